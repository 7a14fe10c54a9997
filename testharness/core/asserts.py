"""Assertion functions available to test documents.

Every assertion raises :class:`AssertionFailure` on mismatch. Raised inside a
test body or step it ends that test with FAIL; the step executor catches it.
"""
from __future__ import annotations

import math
import re
from typing import Any, Callable, Iterable, Optional, Sequence, Type, Union


class AssertionFailure(AssertionError):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def format_value(value: Any) -> str:
    if isinstance(value, str):
        return repr(value)
    if isinstance(value, float) and value == 0 and math.copysign(1.0, value) < 0:
        return "-0.0"
    if isinstance(value, BaseException):
        return f"{type(value).__name__}({str(value)!r})"
    return repr(value)


def _make_message(function_name: str, description: Optional[str], error: str) -> str:
    if description:
        return f"{function_name}: {description} {error}"
    return f"{function_name}: {error}"


def _assert(condition: bool, function_name: str, description: Optional[str], error: str) -> None:
    if not condition:
        raise AssertionFailure(_make_message(function_name, description, error))


def _same_value(actual: Any, expected: Any) -> bool:
    if type(actual) is not type(expected):
        return False
    if isinstance(actual, float):
        if math.isnan(actual) and math.isnan(expected):
            return True
        if actual == 0 and expected == 0:
            return math.copysign(1.0, actual) == math.copysign(1.0, expected)
    return actual == expected


def assert_true(actual: Any, description: Optional[str] = None) -> None:
    _assert(actual is True, "assert_true", description, f"expected True got {format_value(actual)}")


def assert_false(actual: Any, description: Optional[str] = None) -> None:
    _assert(actual is False, "assert_false", description, f"expected False got {format_value(actual)}")


def assert_equals(actual: Any, expected: Any, description: Optional[str] = None) -> None:
    """Check *actual* and *expected* are the same value of the same type.

    NaN equals NaN and 0.0 differs from -0.0.
    """
    if type(actual) is not type(expected):
        _assert(
            False,
            "assert_equals",
            description,
            f"expected ({type(expected).__name__}) {format_value(expected)} "
            f"but got ({type(actual).__name__}) {format_value(actual)}",
        )
    _assert(
        _same_value(actual, expected),
        "assert_equals",
        description,
        f"expected {format_value(expected)} but got {format_value(actual)}",
    )


def assert_not_equals(actual: Any, expected: Any, description: Optional[str] = None) -> None:
    _assert(
        not _same_value(actual, expected),
        "assert_not_equals",
        description,
        f"got disallowed value {format_value(actual)}",
    )


def assert_in_array(actual: Any, expected: Iterable[Any], description: Optional[str] = None) -> None:
    expected = list(expected)
    _assert(
        actual in expected,
        "assert_in_array",
        description,
        f"value {format_value(actual)} not in array {format_value(expected)}",
    )


def assert_array_equals(
    actual: Sequence[Any], expected: Sequence[Any], description: Optional[str] = None
) -> None:
    _assert(
        len(actual) == len(expected),
        "assert_array_equals",
        description,
        f"lengths differ, expected {len(expected)} got {len(actual)}",
    )
    for index, (got, want) in enumerate(zip(actual, expected)):
        _assert(
            _same_value(got, want),
            "assert_array_equals",
            description,
            f"property {index}, expected {format_value(want)} but got {format_value(got)}",
        )


def assert_approx_equals(
    actual: float, expected: float, epsilon: float, description: Optional[str] = None
) -> None:
    _assert(
        isinstance(actual, (int, float)) and not isinstance(actual, bool),
        "assert_approx_equals",
        description,
        f"expected a number but got {format_value(actual)}",
    )
    _assert(
        abs(actual - expected) <= epsilon,
        "assert_approx_equals",
        description,
        f"expected {format_value(expected)} +/- {format_value(epsilon)} but got {format_value(actual)}",
    )


def assert_regexp_match(actual: str, expected: Union[str, "re.Pattern[str]"], description: Optional[str] = None) -> None:
    pattern = re.compile(expected) if isinstance(expected, str) else expected
    _assert(
        pattern.search(actual) is not None,
        "assert_regexp_match",
        description,
        f"expected {format_value(actual)} to match {pattern.pattern!r}",
    )


def _error_kind(exc: BaseException) -> str:
    # Errors may carry a string ``name`` naming their kind; fall back to the class.
    name = getattr(exc, "name", None)
    if isinstance(name, str):
        return name
    return type(exc).__name__


def assert_throws(
    expected: Union[str, Type[BaseException]],
    func: Callable[[], Any],
    description: Optional[str] = None,
) -> BaseException:
    """Check *func* raises an error of the *expected* kind and return it.

    *expected* is either an exception class or the name of an error kind,
    compared with the error's ``name`` attribute when it has one.
    """
    try:
        func()
    except Exception as exc:
        if isinstance(expected, str):
            _assert(
                _error_kind(exc) == expected,
                "assert_throws",
                description,
                f"{format_value(exc)} is not a {expected} error",
            )
        else:
            _assert(
                isinstance(exc, expected),
                "assert_throws",
                description,
                f"expected {expected.__name__} but got {type(exc).__name__}",
            )
        return exc
    expected_name = expected if isinstance(expected, str) else expected.__name__
    raise AssertionFailure(
        _make_message("assert_throws", description, f"{func!r} did not throw {expected_name}")
    )


def assert_unreached(description: Optional[str] = None) -> None:
    raise AssertionFailure(_make_message("assert_unreached", description, "Reached unreachable code"))


__all__ = [
    "AssertionFailure",
    "assert_approx_equals",
    "assert_array_equals",
    "assert_equals",
    "assert_false",
    "assert_in_array",
    "assert_not_equals",
    "assert_regexp_match",
    "assert_throws",
    "assert_true",
    "assert_unreached",
    "format_value",
]
