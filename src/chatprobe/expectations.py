"""
Expectations and the call shapes that produce them.

An Expectation is the canonical value the wait engine works with: a mapping
pattern plus an optional check callback. Bots accept several friendlier
call shapes (a bare text, a text with extra fields, a filter mapping, a
callback alone); those are resolved into one of the shape classes below as
soon as the call is made, so a malformed call fails right away instead of
after a timeout.

Call shapes:
- TextExpectation: ``expect("hi")``, ``expect(re.compile("^ok"), {"subtype": "bot_message"})``,
  ``expect("hi", check)``
- FilterExpectation: ``expect({"type": "reaction_added"})``, ``expect({...}, check)``
- CallbackOnlyExpectation: ``expect(check)``

Check callbacks receive the matched event. Returning the value of ``fail()``
vetoes the match and the wait keeps going; raising fails the wait; any other
return value (including None) resolves it.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from chatprobe.exceptions import InvalidExpectationError
from chatprobe.types import CheckCallback


@dataclass(frozen=True)
class Retry:
    """
    Veto returned by a check callback: not this event, keep waiting.

    Attributes:
        expectation: Optional description of what the callback wanted,
            used only for logging
    """

    expectation: Any = None


RETRY = Retry()


def fail(expectation: Any = None) -> Retry:
    """
    Build the veto value a check callback returns to keep waiting.

    Example:
        >>> def only_long_answers(event):
        ...     if len(event["text"]) < 20:
        ...         return fail("a long answer")
        >>> bot.expect(re.compile("^Answer"), only_long_answers)
    """
    if expectation is None:
        return RETRY
    return Retry(expectation)


@dataclass(frozen=True)
class Expectation:
    """
    A pattern plus an optional check callback.

    Attributes:
        pattern: Mapping of event fields to patterns
        check: Called with a matched event; see module docs for its contract
    """

    pattern: Mapping[str, Any]
    check: CheckCallback | None = None


def _is_text(value: Any) -> bool:
    return isinstance(value, str | re.Pattern)


def _scoped(fields: Mapping[str, Any], channel_id: str) -> dict[str, Any]:
    pattern = dict(fields)
    pattern["channel"] = channel_id
    return pattern


@dataclass(frozen=True)
class TextExpectation:
    """Expect a message whose text equals a string or matches a regex."""

    text: str | re.Pattern[str]
    fields: Mapping[str, Any] = field(default_factory=dict)
    check: CheckCallback | None = None

    def to_expectation(self, channel_id: str) -> Expectation:
        pattern = {"type": "message", "text": self.text, **self.fields}
        return Expectation(_scoped(pattern, channel_id), self.check)


@dataclass(frozen=True)
class FilterExpectation:
    """Expect any event containing the given fields."""

    fields: Mapping[str, Any]
    check: CheckCallback | None = None

    def to_expectation(self, channel_id: str) -> Expectation:
        return Expectation(_scoped(self.fields, channel_id), self.check)


@dataclass(frozen=True)
class CallbackOnlyExpectation:
    """Expect any event in the channel that the callback accepts."""

    check: CheckCallback

    def to_expectation(self, channel_id: str) -> Expectation:
        return Expectation({"channel": channel_id}, self.check)


ExpectCall = TextExpectation | FilterExpectation | CallbackOnlyExpectation


@dataclass(frozen=True)
class AnyExpectation:
    """Several patterns raced against each other, sharing one check."""

    patterns: tuple[Mapping[str, Any], ...]
    check: CheckCallback | None = None

    def to_expectations(self, channel_id: str) -> list[Expectation]:
        return [Expectation(_scoped(pattern, channel_id), self.check) for pattern in self.patterns]


def parse_expect_args(
    first: Any,
    second: Any = None,
    third: Any = None,
) -> ExpectCall:
    """
    Resolve the arguments of ``expect`` into a call shape.

    Accepted forms:
    - ``(text_or_regex, [fields], [check])``
    - ``(text_or_regex, check)``
    - ``(fields, [check])``
    - ``(check)``

    Raises:
        InvalidExpectationError: For any other combination
    """
    if _is_text(first):
        if (second is None or isinstance(second, Mapping)) and (third is None or callable(third)):
            return TextExpectation(first, dict(second or {}), third)
        if callable(second) and third is None:
            return TextExpectation(first, {}, second)
    elif isinstance(first, Mapping):
        if (second is None or callable(second)) and third is None:
            return FilterExpectation(dict(first), second)
    elif callable(first) and second is None and third is None:
        return CallbackOnlyExpectation(first)

    raise InvalidExpectationError(
        "Wrong type of arguments passed to expect: "
        f"{type(first).__name__}, {type(second).__name__}, {type(third).__name__}"
    )


def parse_expect_any_args(items: Any, check: Any = None) -> AnyExpectation:
    """
    Resolve the arguments of ``expect_any`` into a call shape.

    Each item is a text, a regex or a mapping of fields. Texts and regexes
    expect a message with that text.

    Raises:
        InvalidExpectationError: If items is empty, not a sequence, holds an
            item of another type, or check is not callable
    """
    if isinstance(items, str | bytes | Mapping) or not isinstance(items, Sequence):
        raise InvalidExpectationError(
            f"expect_any needs a list of texts or mappings, got {type(items).__name__}"
        )
    if not items:
        raise InvalidExpectationError("expect_any needs at least one expectation")
    if check is not None and not callable(check):
        raise InvalidExpectationError(
            f"expect_any check must be callable, got {type(check).__name__}"
        )

    patterns: list[Mapping[str, Any]] = []
    for item in items:
        if _is_text(item):
            patterns.append({"type": "message", "text": item})
        elif isinstance(item, Mapping):
            patterns.append(dict(item))
        else:
            raise InvalidExpectationError(f"Unexpected element in expect_any: {item!r}")
    return AnyExpectation(tuple(patterns), check)


__all__ = [
    "RETRY",
    "Retry",
    "fail",
    "Expectation",
    "TextExpectation",
    "FilterExpectation",
    "CallbackOnlyExpectation",
    "ExpectCall",
    "AnyExpectation",
    "parse_expect_args",
    "parse_expect_any_args",
]
