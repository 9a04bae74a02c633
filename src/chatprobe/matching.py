"""
Structural matching of expectation patterns against chat events.

A pattern is one of:
- a mapping, matched by containment: every key of the pattern must exist
  in the event and its value must match recursively. Keys the pattern does
  not mention are ignored.
- a compiled regular expression, matched against a text value.
- anything else, compared by value equality.

Example:
    >>> import re
    >>> matches({"type": "message", "text": re.compile("^ok")},
    ...         {"type": "message", "text": "ok thanks", "user": "U1"})
    True
    >>> matches({"text": "hi"}, {"type": "hello"})
    False
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any


def matches(pattern: Any, event: Any) -> bool:
    """
    Check whether an event satisfies a pattern.

    Never raises: values the matcher cannot interpret fall through to
    equality, and an equality check that itself fails is a non-match.

    Args:
        pattern: Literal, compiled regex or mapping of field patterns
        event: The value to test (an event or one of its fields)

    Returns:
        True if the event satisfies the pattern
    """
    if isinstance(pattern, Mapping):
        if not isinstance(event, Mapping):
            return False
        for key, expected in pattern.items():
            if key not in event:
                return False
            if not matches(expected, event[key]):
                return False
        return True

    if isinstance(pattern, re.Pattern) and isinstance(event, str):
        try:
            return pattern.search(event) is not None
        except TypeError:
            # bytes pattern against str text
            return False

    if isinstance(pattern, bool) or isinstance(event, bool):
        # True == 1 in Python, but a flag never matches a count
        return type(pattern) is type(event) and pattern == event

    try:
        return bool(pattern == event)
    except Exception:
        return False


__all__ = ["matches"]
