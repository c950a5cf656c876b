"""Structural equality of JSON documents and Python values, with a printed diff."""

from __future__ import annotations

import difflib
import json
import pprint

_MAX_FORMAT = 64 * 1024 - 100


def json_eq(expected, actual):
    """Return True when two JSON strings decode to equivalent values."""
    try:
        expected_value = json.loads(expected)
    except ValueError as exc:
        print(f"Expected value ('{expected}') is not valid json.\nJSON parsing error: '{exc}'")
        return False
    try:
        actual_value = json.loads(actual)
    except ValueError as exc:
        print(f"Input ('{actual}') needs to be valid json.\nJSON parsing error: '{exc}'")
        return False
    return equal(expected_value, actual_value)


def equal(expected, actual):
    """Return True when both values are equal; print a diff otherwise."""
    if callable(expected) or callable(actual):
        print(f"Invalid operation: {expected!r} == {actual!r} (cannot take func type as argument)")
        return False
    if not objects_are_equal(expected, actual):
        exp_text, act_text = _format_unequal(expected, actual)
        print(f"Not equal: \nexpected: {exp_text}\nactual  : {act_text}{_diff(expected, actual)}")
        return False
    return True


def objects_are_equal(expected, actual):
    """Deep equality that does not confuse booleans with numbers."""
    if expected is None or actual is None:
        return expected is actual
    if isinstance(expected, (bytes, bytearray)):
        return isinstance(actual, (bytes, bytearray)) and bytes(expected) == bytes(actual)
    return _deep_equal(expected, actual)


def _deep_equal(a, b):
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, dict):
        return (
            isinstance(b, dict)
            and a.keys() == b.keys()
            and all(_deep_equal(a[k], b[k]) for k in a)
        )
    if isinstance(a, (list, tuple)):
        return (
            isinstance(b, type(a))
            and len(a) == len(b)
            and all(_deep_equal(x, y) for x, y in zip(a, b))
        )
    return a == b


def _diff(expected, actual):
    if expected is None or actual is None or type(expected) is not type(actual):
        return ""
    if not isinstance(expected, (dict, list, tuple, str)):
        return ""
    if isinstance(expected, str):
        e, a = expected, actual
    else:
        e, a = pprint.pformat(expected), pprint.pformat(actual)
    lines = difflib.unified_diff(
        e.splitlines(keepends=True),
        a.splitlines(keepends=True),
        fromfile="Expected",
        tofile="Actual",
        n=1,
    )
    return "\n\nDiff:\n" + "".join(lines)


def _truncate(value):
    text = repr(value)
    if len(text) > _MAX_FORMAT:
        text = text[:_MAX_FORMAT] + "<... truncated>"
    return text


def _format_unequal(expected, actual):
    if type(expected) is not type(actual):
        return (
            f"{type(expected).__name__}({_truncate(expected)})",
            f"{type(actual).__name__}({_truncate(actual)})",
        )
    return _truncate(expected), _truncate(actual)