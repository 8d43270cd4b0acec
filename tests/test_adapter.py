"""Tests for sceneguard.stream.adapter — guarded async streaming."""
import asyncio
import pytest
from sceneguard.models import GuardConfig, SceneDescriptor
from sceneguard.stream.adapter import GuardedStream
from sceneguard.stream.guard import StreamGuard


class FakeSource:
    """Async source that counts pulls and can fail partway."""

    def __init__(self, chunks, fail_after=None):
        self.chunks = list(chunks)
        self.fail_after = fail_after
        self.pulled = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.fail_after is not None and self.pulled >= self.fail_after:
            raise ConnectionError("upstream dropped")
        if self.pulled >= len(self.chunks):
            raise StopAsyncIteration
        chunk = self.chunks[self.pulled]
        self.pulled += 1
        return chunk

    async def aclose(self):
        self.closed = True


def _guard(**scene):
    return StreamGuard(GuardConfig(
        scene=SceneDescriptor(participants=["Mara", "Theo"], target_length=5000, **scene),
        character_roster=["Mara", "Theo", "Iven"],
    ))


async def _drain(stream):
    return [chunk async for chunk in stream]


class TestGuardedStream:
    def test_clean_stream_passes_through(self):
        source = FakeSource(["Mara sat. ", "Theo stood."])
        stream = GuardedStream(source, _guard())
        forwarded = asyncio.run(_drain(stream))

        assert forwarded == ["Mara sat. ", "Theo stood."]
        assert stream.result.content == "Mara sat. Theo stood."
        assert not stream.result.was_terminated
        assert not source.closed

    def test_stop_ceases_pulling(self):
        source = FakeSource(["Mara poured the tea. ", "Iven knocked. ", "never pulled"])
        stream = GuardedStream(source, _guard())
        forwarded = asyncio.run(_drain(stream))

        assert forwarded == ["Mara poured the tea. "]
        assert source.pulled == 2
        assert source.closed
        assert stream.result.was_terminated
        assert stream.result.content == "Mara poured the tea. "

    def test_end_condition_forwards_kept_part(self):
        source = FakeSource(["Mara waited. ", "She closed the door. Then she"])
        stream = GuardedStream(source, _guard(end_condition="She closed the door."))
        forwarded = asyncio.run(_drain(stream))

        assert forwarded == ["Mara waited. ", "She closed the door."]
        assert stream.result.end_condition_reached
        assert stream.result.content.endswith("\n\n---")

    def test_collect_returns_result(self):
        source = FakeSource(["Mara sat. ", "The next morning she left."])
        result = asyncio.run(GuardedStream(source, _guard()).collect())
        assert result.was_terminated
        assert result.content == "Mara sat. "

    def test_source_error_propagates_with_partial_result(self):
        source = FakeSource(["Mara sat. ", "Theo stood. ", "lost"], fail_after=2)
        stream = GuardedStream(source, _guard())

        with pytest.raises(ConnectionError):
            asyncio.run(stream.collect())

        partial = stream.result
        assert partial.content == "Mara sat. Theo stood. "
        assert partial.was_terminated is False

    def test_plain_async_generator_source(self):
        async def source():
            yield "Mara sat. "
            yield "The next morning she left."
            yield "unreachable"

        stream = GuardedStream(source(), _guard())
        forwarded = asyncio.run(_drain(stream))
        assert forwarded == ["Mara sat. "]
        assert stream.result.violations[0].category == "time_jump"
