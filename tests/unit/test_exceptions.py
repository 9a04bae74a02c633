"""
Unit tests for library exceptions.
"""

import re

import pytest

from chatprobe.exceptions import (
    ChannelNotSelectedError,
    ChatProbeError,
    DirectoryLookupError,
    InvalidExpectationError,
    NotConnectedError,
    RateLimiterError,
    WaitFailure,
)


class TestHierarchy:
    """Every library error derives from ChatProbeError."""

    @pytest.mark.parametrize(
        "error",
        [
            InvalidExpectationError("bad"),
            ChannelNotSelectedError("send"),
            NotConnectedError("select a channel"),
            DirectoryLookupError("channel named", "random"),
            RateLimiterError("stopped"),
            WaitFailure({"text": "hi"}, []),
        ],
    )
    def test_base_class(self, error):
        assert isinstance(error, ChatProbeError)

    def test_channel_not_selected_message(self):
        error = ChannelNotSelectedError("send")
        assert str(error).startswith("Cannot send before a channel is selected.")
        assert error.step == "send"


class TestWaitFailure:
    """Tests for WaitFailure messages and attributes."""

    def test_single_text_with_history(self):
        failure = WaitFailure(
            {"type": "message", "text": "hi"},
            [{"text": "hello"}, {"text": "bye"}],
        )
        assert str(failure) == (
            'Expected message "hi" was not received. '
            'Instead, received following messages:\n["hello", "bye"]'
        )

    def test_single_text_without_history(self):
        failure = WaitFailure({"text": "hi"}, [])
        assert str(failure) == (
            'Expected message "hi" was not received. Did not receive any messages at all.'
        )

    def test_regex_text(self):
        failure = WaitFailure({"text": re.compile("^ok")}, [])
        assert str(failure).startswith('Expected message "^ok"')

    def test_pattern_without_text(self):
        failure = WaitFailure({"type": "reaction_added"}, [])
        assert str(failure).startswith("Expected message was not received.")

    def test_several_patterns(self):
        failure = WaitFailure([{"text": "hi"}, {"text": "hello"}], [])
        assert str(failure).startswith('Expected messages ["hi", "hello"] were not received.')

    def test_events_without_text(self):
        """Events lacking text are listed as null."""
        failure = WaitFailure({"text": "hi"}, [{"type": "reaction_added"}])
        assert failure.received_texts == [None]
        assert str(failure).endswith("[null]")

    def test_received_during_wait_defaults_to_received(self):
        events = [{"text": "a"}]
        failure = WaitFailure({"text": "hi"}, events)
        assert failure.received_during_wait == events
        assert failure.received is not events
