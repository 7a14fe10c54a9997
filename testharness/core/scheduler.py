"""Step executor: runs test bodies and steps, turning exceptions into results."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Sequence

from testharness.logging.logger import get_logger

if TYPE_CHECKING:
    from .testcase import Test

logger = get_logger(__name__)


def describe_failure(exc: BaseException) -> str:
    if isinstance(exc, AssertionError):
        message = getattr(exc, "message", None) or str(exc)
        return message or "assertion failed"
    detail = str(exc)
    if detail:
        return f"Unhandled {type(exc).__name__}: {detail}"
    return f"Unhandled {type(exc).__name__}"


def _record_failure(test: "Test", exc: Exception) -> None:
    if test.is_done:
        logger.debug("Ignoring %r raised after test %r finished", exc, test.name)
        return
    test.fail(describe_failure(exc))


def run_step(
    test: "Test",
    func: Callable[..., Any],
    args: Sequence[Any] = (),
    kwargs: Optional[Dict[str, Any]] = None,
) -> Any:
    try:
        return func(*args, **(kwargs or {}))
    except Exception as exc:
        _record_failure(test, exc)
        return None


async def run_coroutine(test: "Test", awaitable: Awaitable[Any]) -> None:
    """Await a coroutine test body; finish the test when it settles."""
    try:
        await awaitable
    except Exception as exc:
        _record_failure(test, exc)
        return
    test.done()
