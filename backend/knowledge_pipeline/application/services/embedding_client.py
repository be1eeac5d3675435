"""Rate-limited embedding client — every embedding call goes through the shared limiter.

Each call gets its own timeout; expiry cancels only that request and raises
EmbeddingTimeoutError, distinct from provider-reported errors.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from knowledge_pipeline.application.interfaces.embedding_provider import EmbeddingProvider
from knowledge_pipeline.application.services.rate_limiter import ReservoirRateLimiter
from knowledge_pipeline.domain.exceptions import EmbeddingTimeoutError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 15.0


@dataclass(frozen=True)
class EmbeddingOutcome:
    """Result of one item of an ``embed_many`` call: a vector or the error that replaced it."""

    index: int
    vector: list[float] | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


OutcomeCallback = Callable[[EmbeddingOutcome], None]


class RateLimitedEmbeddingClient:
    """Wraps an EmbeddingProvider with the shared limiter and per-call timeouts."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        limiter: ReservoirRateLimiter,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
    ):
        self._provider = provider
        self._limiter = limiter
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        return self._provider.provider_name

    async def embed_one(self, text: str, *, label: str = "query") -> list[float]:
        """Embed a single text.

        Raises:
            EmbeddingTimeoutError: the call exceeded its timeout after dispatch.
            ProviderError: the provider rejected the request.
        """
        async with self._limiter.slot():
            try:
                return await asyncio.wait_for(
                    self._provider.create_embedding(text), timeout=self._timeout
                )
            except asyncio.TimeoutError:
                logger.warning("Embedding request for %s timed out after %.1fs", label, self._timeout)
                raise EmbeddingTimeoutError(label, self._timeout) from None

    async def embed_many(
        self,
        texts: list[str],
        *,
        on_result: OutcomeCallback | None = None,
    ) -> list[EmbeddingOutcome]:
        """Embed every text independently; one outcome per input, in input order.

        A failing item never affects its siblings. ``on_result`` fires as each
        item finishes, in completion order.
        """

        async def run(index: int, text: str) -> EmbeddingOutcome:
            try:
                vector = await self.embed_one(text, label=f"chunk {index + 1}")
                outcome = EmbeddingOutcome(index=index, vector=vector)
            except Exception as exc:
                outcome = EmbeddingOutcome(index=index, error=exc)
            if on_result is not None:
                on_result(outcome)
            return outcome

        return list(await asyncio.gather(*(run(i, t) for i, t in enumerate(texts))))
