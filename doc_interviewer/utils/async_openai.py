"""Fire batches of OpenAI Responses API calls concurrently.

Callers stay synchronous: ``stream_batch`` yields ``(index, result)`` pairs
as they complete. A failed request yields its exception in place of the text
so one bad batch never sinks the others.
"""

import asyncio
import logging
import queue
import threading
from collections.abc import Iterator
from dataclasses import dataclass

from openai import AsyncOpenAI

from constants import LLM_MODEL

logger = logging.getLogger(__name__)

BatchResult = str | Exception


@dataclass(frozen=True)
class OpenAIRequest:
    system_prompt: str
    user_prompt: str
    model: str = LLM_MODEL
    reasoning_effort: str | None = None


def _get_openai_client() -> AsyncOpenAI:
    return AsyncOpenAI()


async def _call(client: AsyncOpenAI, request: OpenAIRequest) -> str:
    kwargs: dict[str, object] = {
        "model": request.model,
        "instructions": request.system_prompt,
        "input": request.user_prompt,
    }
    if request.reasoning_effort:
        kwargs["reasoning"] = {"effort": request.reasoning_effort}
    response = await client.responses.create(**kwargs)
    output_text = getattr(response, "output_text", None)
    if isinstance(output_text, str):
        return output_text
    raise ValueError("Unexpected OpenAI response format.")


async def _run_all(requests: list[OpenAIRequest], max_concurrency: int, on_result) -> None:
    client = _get_openai_client()
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def worker(idx: int, request: OpenAIRequest) -> None:
        async with semaphore:
            try:
                result: BatchResult = await _call(client, request)
            except Exception as exc:
                logger.warning("OpenAI request %d failed: %s", idx, exc)
                result = exc
        on_result(idx, result)

    await asyncio.gather(*(worker(idx, r) for idx, r in enumerate(requests)))


def stream_batch(
    requests: list[OpenAIRequest],
    *,
    max_concurrency: int = 4,
) -> Iterator[tuple[int, BatchResult]]:
    """Yield ``(index, result)`` as each request completes.

    The event loop runs in a worker thread so this works from any caller,
    including threads that already own a loop.
    """
    total = len(requests)
    if total == 0:
        return
    results: "queue.Queue[tuple[int, BatchResult]]" = queue.Queue()
    done: set[int] = set()

    def on_result(idx: int, result: BatchResult) -> None:
        results.put((idx, result))

    def runner() -> None:
        try:
            asyncio.run(_run_all(list(requests), max_concurrency, on_result))
        except Exception as exc:
            logger.exception("OpenAI batch runner failed")
            for idx in range(total):
                if idx not in done:
                    results.put((idx, exc))

    thread = threading.Thread(target=runner, daemon=True)
    thread.start()
    while len(done) < total:
        idx, result = results.get()
        if idx in done:
            continue
        done.add(idx)
        yield idx, result
    thread.join()
