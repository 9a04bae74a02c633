"""
End-to-end conversations over the in-memory chat service.

Covers the full flow a test suite would use: connect, address a user,
send, expect, finish; several bots sharing one rate limiter; and the
failure report when the other side stays silent.
"""

import asyncio
import re

import pytest
import pytest_asyncio

from chatprobe import WaitFailure, create_bot
from chatprobe.config import BotConfig
from chatprobe.testing import InMemoryChatHarness

pytestmark = pytest.mark.integration

# Loop clocks can round a sleep down by a hair.
EPSILON = 0.002


@pytest_asyncio.fixture
async def helpdesk():
    """Harness whose fake service plays a help bot named helpbot."""
    harness = InMemoryChatHarness(rate=200.0)
    service = harness.service
    service.add_member("UHELP", "helpbot")
    service.add_member("U2", "bob")
    service.add_direct_channel("DHELP", user="UHELP")
    service.add_channel("C1", "general")
    service.reply_to("help", "hi", user="UHELP")
    service.reply_to("usage", "Usage: /deploy <service>", user="UHELP", delay=0.05)
    harness.start()
    yield harness
    await harness.stop()


class TestConversation:
    """Complete conversations with a scripted counterpart."""

    @pytest.mark.asyncio
    async def test_help_gets_hi(self, helpdesk):
        bot = helpdesk.create_bot(timeout=500)
        await bot.im("helpbot").send("help").expect("hi").finish()

        assert [(m.channel, m.text) for m in helpdesk.service.posted] == [("DHELP", "help")]

    @pytest.mark.asyncio
    async def test_silence_reports_no_messages(self, helpdesk):
        """Asking something nobody answers yields a WaitFailure with nothing received."""
        bot = helpdesk.create_bot(timeout=500)

        loop = asyncio.get_running_loop()
        started = loop.time()
        with pytest.raises(WaitFailure) as exc_info:
            await bot.im("helpbot").send("anyone there?").expect("hi").finish()

        assert loop.time() - started >= 0.5 - EPSILON
        assert exc_info.value.received == []
        assert str(exc_info.value) == (
            'Expected message "hi" was not received. Did not receive any messages at all.'
        )

    @pytest.mark.asyncio
    async def test_wrong_answer_is_listed(self, helpdesk):
        bot = helpdesk.create_bot(timeout=200)
        with pytest.raises(WaitFailure) as exc_info:
            await bot.im("helpbot").send("help").expect("hello").finish()

        assert exc_info.value.received_texts == ["hi"]
        assert str(exc_info.value).endswith('received following messages:\n["hi"]')

    @pytest.mark.asyncio
    async def test_multi_turn_conversation(self, helpdesk):
        """Several exchanges in one chain, each answered in turn."""
        bot = helpdesk.create_bot(timeout=500)
        await (
            bot.im("helpbot")
            .send("help")
            .expect("hi")
            .send("usage")
            .expect(re.compile(r"^Usage: /deploy"))
            .finish()
        )

    @pytest.mark.asyncio
    async def test_check_inspects_the_answer(self, helpdesk):
        """A check can assert on fields of the matched event."""
        authors: list[str] = []
        bot = helpdesk.create_bot(timeout=500)

        def from_helpbot(event):
            authors.append(event["user"])
            assert event["user"] == "UHELP"

        await bot.im("helpbot").send("help").expect("hi", from_helpbot).finish()
        assert authors == ["UHELP"]

    @pytest.mark.asyncio
    async def test_callback_style_completion(self, helpdesk):
        """Runners using done-callbacks get the outcome without awaiting."""
        done = asyncio.Event()
        outcomes: list[object] = []

        def report(error):
            outcomes.append(error)
            done.set()

        helpdesk.create_bot(timeout=500).im("helpbot").send("help").expect("hi").finish(report)
        await asyncio.wait_for(done.wait(), 2.0)
        assert outcomes == [None]


class TestSharedRateLimit:
    """Several bots share one process-wide rate limiter."""

    @pytest.mark.asyncio
    async def test_outbound_calls_are_spaced(self):
        harness = InMemoryChatHarness(rate=20.0)
        harness.service.add_channel("C1", "general")
        harness.start()
        try:
            first = harness.create_bot().channel("general").send("one")
            second = harness.create_bot().channel("general").send("two")
            await asyncio.gather(first.finish(), second.finish())
        finally:
            await harness.stop()

        times = [at for _, at in harness.service.calls]
        gaps = [later - earlier for earlier, later in zip(times, times[1:], strict=False)]
        # subscribe, authenticate, list_channels, post_message for each bot
        assert len(times) == 8
        assert all(gap >= 0.05 - EPSILON for gap in gaps)

    @pytest.mark.asyncio
    async def test_bots_with_separate_configs(self, helpdesk):
        """create_bot wires any transport, directory and queue together."""
        bot = create_bot(
            BotConfig(token="xoxb-second", timeout=500),
            transport=helpdesk.service,
            directory=helpdesk.directory,
            queue=helpdesk.queue,
            enable_tracing=False,
        )
        await bot.channel("general").send("help").expect("hi").close()
        assert helpdesk.service.authenticated_token == "xoxb-second"
        assert helpdesk.service.subscriber_count == 0
