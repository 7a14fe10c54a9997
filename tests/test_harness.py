import asyncio

import pytest

from testharness.core.asserts import assert_equals, assert_true
from testharness.core.state_machine import HarnessStatusCode as Code
from testharness.core.state_machine import TestState as State
from testharness.core.state_machine import TestStatus as Status


def _record_completion(harness):
    completions = []
    harness.add_completion_callback(lambda tests, status: completions.append((list(tests), status.status)))
    return completions


@pytest.mark.asyncio
async def test_sync_failure_still_completes_ok_after_load(make_harness):
    harness = make_harness()
    completions = _record_completion(harness)
    t = harness.test(lambda t: assert_equals(1, 2), "mismatch")

    assert completions == []
    harness.signal_load()

    assert t.status is Status.FAIL
    assert "expected 2 but got 1" in t.message
    assert completions == [([t], Code.OK)]
    assert harness.status.message is None


@pytest.mark.asyncio
async def test_completion_waits_for_pending_tests_after_load(make_harness):
    harness = make_harness()
    completions = _record_completion(harness)
    t = harness.async_test(name="pending")
    harness.signal_load()
    assert completions == []
    assert harness.pending_count == 1

    t.done()
    assert harness.pending_count == 0
    assert completions == [([t], Code.OK)]


@pytest.mark.asyncio
async def test_completion_waits_for_load_after_tests_finish(make_harness):
    harness = make_harness()
    completions = _record_completion(harness)
    t = harness.async_test(name="pending")
    t.done()
    assert completions == []

    harness.signal_load()
    assert completions == [([t], Code.OK)]


@pytest.mark.asyncio
async def test_explicit_done_holds_completion(make_harness):
    harness = make_harness(explicit_done=True)
    completions = _record_completion(harness)
    harness.test(lambda t: None, "a")
    harness.signal_load()
    assert harness.pending_count == 0
    assert completions == []

    harness.done()
    assert len(completions) == 1


@pytest.mark.asyncio
async def test_explicit_done_before_load_is_remembered(make_harness):
    harness = make_harness(explicit_done=True)
    completions = _record_completion(harness)
    harness.signal_explicit_done()
    harness.test(lambda t: None, "a")
    assert completions == []
    harness.signal_load()
    assert len(completions) == 1


@pytest.mark.asyncio
async def test_no_tests_completes_on_load(make_harness):
    harness = make_harness()
    harness.signal_load()
    report = await harness.wait()
    assert report.status.status is Code.OK
    assert report.tests == []


@pytest.mark.asyncio
async def test_complete_fires_once(make_harness):
    harness = make_harness()
    completions = _record_completion(harness)
    harness.signal_load()
    harness.signal_load()
    harness.evaluate_completion()
    harness.timeout()
    assert len(completions) == 1
    assert harness.status.status is Code.OK


@pytest.mark.asyncio
async def test_start_fires_once_before_first_registration(make_harness):
    harness = make_harness()
    starts = []
    harness.add_start_callback(lambda: starts.append(len(harness.tests)))
    harness.test(lambda t: None, "a")
    harness.test(lambda t: None, "b")
    assert starts == [0]


@pytest.mark.asyncio
async def test_order_of_tests_is_creation_order(make_harness):
    harness = make_harness()
    late = harness.async_test(name="first created")
    harness.test(lambda t: None, "second created")
    late.done()
    harness.signal_load()
    report = await harness.wait()
    assert [result.name for result in report.tests] == ["first created", "second created"]


@pytest.mark.asyncio
async def test_duplicate_names_are_separate_entries(make_harness):
    harness = make_harness()
    harness.test(lambda t: None, "same")
    harness.test(lambda t: assert_true(False), "same")
    harness.signal_load()
    report = await harness.wait()
    assert [(r.name, r.status) for r in report.tests] == [("same", Status.PASS), ("same", Status.FAIL)]


@pytest.mark.asyncio
async def test_harness_timeout_marks_pending_tests_notrun(make_harness):
    harness = make_harness(timeout_ms=30)
    results = []
    harness.add_result_callback(lambda t: results.append((t.name, t.status)))
    finished = harness.test(lambda t: None, "finished")
    never_stepped = harness.async_test(name="never stepped", properties={"timeout_ms": 10})
    harness.signal_load()

    report = await asyncio.wait_for(harness.wait(), 1)

    assert report.status.status is Code.TIMEOUT
    assert report.status.message == "Harness timed out"
    assert finished.status is Status.PASS
    assert never_stepped.status is Status.NOTRUN
    assert never_stepped.state is State.COMPLETE
    assert results == [("finished", Status.PASS), ("never stepped", Status.NOTRUN)]
    assert harness.pending_count == 0


@pytest.mark.asyncio
async def test_finishing_a_test_from_a_timeout_result_completes_once(make_harness):
    harness = make_harness()
    events = []
    a = harness.async_test(name="a")
    b = harness.async_test(name="b")
    harness.signal_load()

    def on_result(test):
        events.append(("result", test.name, test.status))
        if test is a:
            b.done()

    harness.add_result_callback(on_result)
    harness.add_completion_callback(lambda tests, status: events.append(("complete", status.status)))
    harness.timeout()

    assert events == [
        ("result", "a", Status.NOTRUN),
        ("result", "b", Status.NOTRUN),
        ("complete", Code.TIMEOUT),
    ]
    assert harness.pending_count == 0


@pytest.mark.asyncio
async def test_test_created_during_timeout_is_closed_before_complete(make_harness):
    harness = make_harness()
    completions = _record_completion(harness)
    harness.async_test(name="pending")
    harness.signal_load()
    created = []

    def on_result(test):
        if not created:
            created.append(harness.async_test(name="late"))

    harness.add_result_callback(on_result)
    harness.timeout()

    assert len(completions) == 1
    tests, status = completions[0]
    assert status is Code.TIMEOUT
    assert [t.name for t in tests] == ["pending", "late"]
    assert all(t.state is State.COMPLETE for t in tests)
    assert created[0].status is Status.NOTRUN
    assert harness.pending_count == 0


@pytest.mark.asyncio
async def test_per_test_timeout_beats_harness_timeout(make_harness):
    harness = make_harness(timeout_ms=500)
    t = harness.async_test(name="slow", properties={"timeout_ms": 20})
    t.step(lambda: None)
    harness.signal_load()
    report = await asyncio.wait_for(harness.wait(), 1)
    assert report.status.status is Code.OK
    assert report.tests[0].status is Status.TIMEOUT


@pytest.mark.asyncio
async def test_all_tests_complete_when_complete_fires(make_harness):
    harness = make_harness(timeout_ms=30)
    states = []
    harness.add_completion_callback(lambda tests, status: states.extend(t.state for t in tests))
    harness.async_test(name="a")
    harness.test(lambda t: None, "b")
    harness.signal_load()
    await asyncio.wait_for(harness.wait(), 1)
    assert states == [State.COMPLETE, State.COMPLETE]


@pytest.mark.asyncio
async def test_explicit_timeout_disables_global_timer(make_harness):
    harness = make_harness(timeout_ms=10, explicit_timeout=True)
    t = harness.async_test(name="waiting")
    harness.signal_load()
    await asyncio.sleep(0.05)
    assert not harness.completed

    harness.timeout()
    assert harness.completed
    assert t.status is Status.NOTRUN
    assert harness.status.status is Code.TIMEOUT


@pytest.mark.asyncio
async def test_setup_error_sets_harness_error_but_tests_run(make_harness):
    harness = make_harness()

    def broken_setup():
        raise RuntimeError("fixture missing")

    harness.setup(broken_setup)
    t = harness.test(lambda t: None, "still runs")
    harness.signal_load()
    report = await harness.wait()
    assert t.status is Status.PASS
    assert report.status.status is Code.ERROR
    assert report.status.message == "Unhandled RuntimeError: fixture missing"


@pytest.mark.asyncio
async def test_setup_properties_apply_before_first_result(make_harness):
    harness = make_harness()
    harness.setup(properties={"explicit_done": True, "timeout": 2000})
    assert harness.settings.explicit_done is True
    assert harness.settings.timeout_ms == 2000

    harness.test(lambda t: None, "a")
    harness.setup(properties={"explicit_done": False})
    assert harness.settings.explicit_done is True
    assert harness.setup_locked


@pytest.mark.asyncio
async def test_setup_is_locked_after_first_result(make_harness):
    harness = make_harness()
    calls = []
    harness.test(lambda t: None, "a")
    harness.setup(lambda: calls.append("ran"))
    assert calls == []


@pytest.mark.asyncio
async def test_setup_rearms_global_timer(make_harness):
    harness = make_harness(timeout_ms=5000)
    harness.async_test(name="stuck")
    harness.setup(properties={"timeout_ms": 20})
    harness.signal_load()
    report = await asyncio.wait_for(harness.wait(), 1)
    assert report.status.status is Code.TIMEOUT


@pytest.mark.asyncio
async def test_result_after_harness_timeout_is_ignored(make_harness):
    harness = make_harness()
    results = []
    harness.add_result_callback(results.append)
    t = harness.async_test(name="late")
    harness.timeout()
    t.done()
    t.step(lambda: assert_true(False))
    assert t.status is Status.NOTRUN
    assert results == [t]


@pytest.mark.asyncio
async def test_generate_tests_creates_independent_tests(make_harness):
    harness = make_harness()
    created = harness.generate_tests(assert_equals, [["A", 1, 1], ["B", 1, 2]])
    assert [t.name for t in created] == ["A", "B"]
    assert [t.status for t in created] == [Status.PASS, Status.FAIL]
    assert "expected 2 but got 1" in created[1].message


@pytest.mark.asyncio
async def test_generate_tests_with_per_test_properties(make_harness):
    harness = make_harness()
    created = harness.generate_tests(
        lambda x: None,
        [("first", 1), ("second", 2)],
        [{"timeout_ms": 100}, {"timeout_ms": 200}],
    )
    assert [t.timeout_ms for t in created] == [100, 200]


@pytest.mark.asyncio
async def test_generate_tests_with_shared_properties(make_harness):
    harness = make_harness()
    created = harness.generate_tests(lambda: None, [("only",)], {"timeout": 50})
    assert created[0].timeout_ms == 50
    assert created[0].status is Status.PASS


@pytest.mark.asyncio
async def test_promise_test_passes_when_coroutine_returns(make_harness):
    harness = make_harness()

    async def body(t):
        await asyncio.sleep(0)
        assert_true(True)

    t = harness.promise_test(body, "coroutine")
    assert t.state is State.RUNNING
    harness.signal_load()
    report = await asyncio.wait_for(harness.wait(), 1)
    assert report.tests[0].status is Status.PASS


@pytest.mark.asyncio
async def test_promise_test_fails_when_coroutine_raises(make_harness):
    harness = make_harness()

    async def body(t):
        await asyncio.sleep(0)
        assert_equals("got", "want")

    t = harness.promise_test(body)
    harness.signal_load()
    await asyncio.wait_for(harness.wait(), 1)
    assert t.name == "body"
    assert t.status is Status.FAIL
    assert "'want'" in t.message


@pytest.mark.asyncio
async def test_promise_test_rejects_non_awaitable(make_harness):
    harness = make_harness()
    t = harness.promise_test(lambda t: 42, "not a coroutine")
    assert t.status is Status.FAIL
    assert "did not return an awaitable" in t.message


@pytest.mark.asyncio
async def test_promise_test_timeout_cancels_coroutine(make_harness):
    harness = make_harness()
    finished = []

    async def body(t):
        await asyncio.sleep(1)
        finished.append(True)

    t = harness.promise_test(body, "hangs", {"timeout_ms": 20})
    harness.signal_load()
    await asyncio.wait_for(harness.wait(), 1)
    await asyncio.sleep(0)
    assert t.status is Status.TIMEOUT
    assert finished == []


@pytest.mark.asyncio
async def test_observer_failure_does_not_change_status(make_harness):
    harness = make_harness()

    def broken(test):
        raise RuntimeError("observer bug")

    seen = []
    harness.add_result_callback(broken)
    harness.add_result_callback(seen.append)
    t = harness.test(lambda t: None, "fine")
    harness.signal_load()
    report = await harness.wait()
    assert t.status is Status.PASS
    assert seen == [t]
    assert report.status.status is Code.OK


@pytest.mark.asyncio
async def test_observers_cleared_after_completion(make_harness):
    harness = make_harness()
    results = []
    harness.add_result_callback(results.append)
    harness.signal_load()
    await harness.wait()
    late = harness.async_test(name="after completion")
    late.done()
    assert results == []
