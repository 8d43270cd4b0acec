import logging
from typing import AsyncIterable, AsyncIterator

from sceneguard.models import GuardResult
from sceneguard.stream.guard import StreamGuard

logger = logging.getLogger(__name__)


class GuardedStream:
    """Async iterator that passes a text stream through a StreamGuard.

    Yields only the text the guard lets through. When the guard says stop,
    the source is not pulled again and is closed if it can be. Errors from
    the source propagate; ``result`` still reports what was accumulated.
    """

    def __init__(self, source: AsyncIterable[str], guard: StreamGuard):
        self.source = source
        self.guard = guard

    @property
    def result(self) -> GuardResult:
        return self.guard.get_result()

    async def __aiter__(self) -> AsyncIterator[str]:
        iterator = self.source.__aiter__()
        while True:
            try:
                chunk = await iterator.__anext__()
            except StopAsyncIteration:
                return
            except Exception:
                logger.exception("Source stream failed after %d chars", len(self.guard.content))
                raise

            decision = self.guard.process_chunk(chunk)
            if decision.forwarded:
                yield decision.forwarded

            if not decision.should_continue:
                await self._close(iterator)
                return

    async def _close(self, iterator):
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()

    async def collect(self) -> GuardResult:
        """Drain the stream and return the guard result."""
        async for _ in self:
            pass
        return self.result
