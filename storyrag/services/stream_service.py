"""
Consumer for streamed generation output.

The writer can stop a generation at any time; whatever arrived until then is
kept. A failing stream also keeps its partial text and reports the error.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterable, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class StreamResult:
    text: str = ""
    finished: bool = False
    cancelled: bool = False
    error: Optional[str] = None


async def _close(iterator) -> None:
    aclose = getattr(iterator, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as e:
        logger.warning("Error while closing stream: %s", e)


async def consume_stream(
    stream: AsyncIterable[str],
    cancel_event: Optional[asyncio.Event] = None,
    on_chunk: Optional[Callable[[str], None]] = None,
) -> StreamResult:
    """
    Accumulate text chunks until the stream ends, fails or cancel_event is set.
    A pending chunk is abandoned as soon as cancel_event fires.
    """
    iterator = stream.__aiter__()
    parts = []
    result = StreamResult()

    while True:
        if cancel_event is not None and cancel_event.is_set():
            result.cancelled = True
            break

        next_chunk = asyncio.ensure_future(iterator.__anext__())
        if cancel_event is not None:
            cancelled = asyncio.ensure_future(cancel_event.wait())
            await asyncio.wait({next_chunk, cancelled}, return_when=asyncio.FIRST_COMPLETED)
            if not next_chunk.done():
                next_chunk.cancel()
                await asyncio.gather(next_chunk, return_exceptions=True)
                result.cancelled = True
                break
            cancelled.cancel()

        try:
            chunk = await next_chunk
        except StopAsyncIteration:
            result.finished = True
            break
        except Exception as e:
            logger.warning("Stream failed after %d chars: %s", sum(len(p) for p in parts), e)
            result.error = str(e) or type(e).__name__
            break

        if not chunk:
            continue
        parts.append(chunk)
        if on_chunk is not None:
            on_chunk(chunk)

    if not result.finished:
        await _close(iterator)
    result.text = "".join(parts)
    return result
