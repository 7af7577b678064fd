"""Ordered, short-circuiting resolution pipeline over extraction strategies."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Sequence

import httpx

from instagram_download_api.services.strategies import (
    ExtractionOutcome,
    ExtractionStrategy,
    Found,
    MediaRef,
    NotFound,
    TransientError,
)
from instagram_download_api.services.url_validator import PostReference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionAttempt:
    """Diagnostic record of one strategy run. Never returned to callers."""
    strategy_name: str
    outcome: ExtractionOutcome
    elapsed_seconds: float = 0.0

    def describe(self) -> str:
        if isinstance(self.outcome, Found):
            return f"{self.strategy_name}: found {self.outcome.media_ref.kind.value}"
        if isinstance(self.outcome, NotFound):
            return f"{self.strategy_name}: not found ({self.outcome.reason})"
        return f"{self.strategy_name}: error ({self.outcome.message})"


class PipelineExhausted(RuntimeError):
    """Raised when every configured strategy failed or found nothing."""

    def __init__(self, post_id: str, attempts: List[ExtractionAttempt]):
        self.post_id = post_id
        self.attempts = attempts
        super().__init__(
            f"All {len(attempts)} extraction strategies failed for post {post_id}"
        )


class ResolutionPipeline:
    """Runs strategies one after another and stops at the first that finds media."""

    def __init__(self, strategies: Sequence[ExtractionStrategy], strategy_timeout: float = 15.0):
        if not strategies:
            raise ValueError("ResolutionPipeline needs at least one strategy")
        if strategy_timeout <= 0:
            raise ValueError("strategy_timeout must be positive")
        self._strategies = tuple(strategies)
        self._strategy_timeout = strategy_timeout

    @property
    def strategy_names(self) -> List[str]:
        return [s.name for s in self._strategies]

    async def _run_strategy(
        self,
        strategy: ExtractionStrategy,
        post: PostReference,
        client: httpx.AsyncClient,
    ) -> ExtractionOutcome:
        """Run one strategy, converting every failure into an outcome."""
        try:
            outcome = await asyncio.wait_for(
                strategy.extract(post, client),
                timeout=self._strategy_timeout,
            )
        except asyncio.TimeoutError:
            return TransientError(f"timed out after {self._strategy_timeout:g}s")
        except Exception as e:
            # Includes StrategyError and any defect inside the strategy; the
            # remaining strategies still get their turn.
            if not isinstance(e, (httpx.HTTPError, RuntimeError, ValueError)):
                logger.exception(f"Unexpected error in strategy '{strategy.name}'")
            return TransientError(f"{type(e).__name__}: {e}")

        if not isinstance(outcome, (Found, NotFound, TransientError)):
            return TransientError(f"strategy returned unsupported outcome {type(outcome).__name__}")
        return outcome

    async def resolve(self, post: PostReference, client: httpx.AsyncClient) -> MediaRef:
        """
        Resolve a post to its media.

        Args:
            post: Validated post reference
            client: HTTP client shared by the strategies for this request

        Returns:
            MediaRef from the first strategy that found media

        Raises:
            PipelineExhausted: If no strategy found media
        """
        attempts: List[ExtractionAttempt] = []

        for strategy in self._strategies:
            started = time.monotonic()
            outcome = await self._run_strategy(strategy, post, client)
            attempt = ExtractionAttempt(
                strategy_name=strategy.name,
                outcome=outcome,
                elapsed_seconds=time.monotonic() - started,
            )
            attempts.append(attempt)
            logger.info(
                f"Strategy attempt for {post.post_id}: {attempt.describe()} "
                f"[{attempt.elapsed_seconds:.2f}s]"
            )

            if isinstance(outcome, Found):
                return outcome.media_ref

        logger.warning(f"Resolution pipeline exhausted for {post.post_id} after {len(attempts)} attempts")
        for attempt in attempts:
            logger.warning(f"  attempt {attempt.describe()}")
        raise PipelineExhausted(post.post_id, attempts)
