"""Unit tests for the stream worker."""

import asyncio

import httpx
import pytest

from datablase.pipeline.stream import EventStream, decode_event_line


class ScriptedStreamClient:
    """Serves one scripted session per connection.

    Each session is a list of lines; an exception instance in the list is
    raised at that point of the session.
    """

    def __init__(self, sessions):
        self.sessions = list(sessions)
        self.opened = 0

    async def stream_lines(self, url):
        session = self.sessions[self.opened]
        self.opened += 1
        for item in session:
            if isinstance(item, Exception):
                raise item
            yield item


class TestDecodeEventLine:
    """Test line framing."""

    def test_plain_json(self):
        assert decode_event_line('{"value": {}}\n') == '{"value": {}}'

    def test_data_prefix(self):
        assert decode_event_line('data: {"value": {}}') == '{"value": {}}'

    def test_blank_and_comments(self):
        assert decode_event_line("") is None
        assert decode_event_line("   ") is None
        assert decode_event_line(": keep-alive") is None
        assert decode_event_line("data:") is None


class TestEventStream:
    """Test ordering, error isolation and reconnects."""

    def test_sequential_delivery_across_reconnects(self):
        """Test payloads are handled in order despite handler and connection errors."""
        client = ScriptedStreamClient([
            ["data: first", "", ": keep-alive", "data: boom", "second"],
            ["third", httpx.ReadError("connection reset")],
            ["data: last", "never"],
        ])
        stream = EventStream(client, reconnect_delay=0)
        handled = []
        in_flight = []

        async def handler(payload):
            in_flight.append(payload)
            assert len(in_flight) == 1
            await asyncio.sleep(0)
            in_flight.pop()
            handled.append(payload)
            if payload == "boom":
                raise ValueError("bad payload")
            if payload == "last":
                stream.stop()

        asyncio.run(stream.stream("https://feed.test/events", handler))

        assert handled == ["first", "boom", "second", "third", "last"]
        assert stream.stats["connections"] == 3
        assert stream.stats["payloads"] == 5
        assert stream.stats["handler_errors"] == 1
        assert stream.stats["disconnects"] == 3

    def test_connection_error_before_first_line(self):
        client = ScriptedStreamClient([
            [httpx.ConnectError("refused")],
            ["ok"],
        ])
        stream = EventStream(client, reconnect_delay=0)
        handled = []

        async def handler(payload):
            handled.append(payload)
            stream.stop()

        asyncio.run(stream.stream("https://feed.test/events", handler))

        assert handled == ["ok"]
        assert client.opened == 2

    def test_stop_releases_connection(self):
        """Test the open response is closed as soon as the worker stops."""

        class TrackingClient:
            closed = False

            async def stream_lines(self, url):
                try:
                    yield "first"
                    yield "second"
                    yield "third"
                finally:
                    TrackingClient.closed = True

        stream = EventStream(TrackingClient(), reconnect_delay=0)
        closed_on_return = []

        async def handler(payload):
            stream.stop()

        async def _run():
            await stream.stream("https://feed.test/events", handler)
            closed_on_return.append(TrackingClient.closed)

        asyncio.run(_run())

        assert closed_on_return == [True]
        assert stream.stats["payloads"] == 1

    def test_cancellation_propagates(self):
        """Test cancelling the worker ends it instead of reconnecting."""

        class HangingClient:
            async def stream_lines(self, url):
                await asyncio.Event().wait()
                yield "unreachable"

        stream = EventStream(HangingClient(), reconnect_delay=0)

        async def _run():
            task = asyncio.create_task(stream.stream("https://feed.test/events", _noop))
            await asyncio.sleep(0)
            task.cancel()
            await task

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(_run())

        assert stream.stats["connections"] == 1


async def _noop(payload):
    pass
