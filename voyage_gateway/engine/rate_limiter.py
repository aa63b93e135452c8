"""
Dual-pool token rate limiter.

Each pool (embedding, rerank) is a fixed-length window with a token budget.
Callers ask how long to wait before sending a request whose cost is only
estimated, then record the usage the service actually reported.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Union

from voyage_gateway.config import get_logger

logger = get_logger(__name__)


class ResourcePool(str, Enum):
    """Independently rate-limited resource classes."""
    EMBEDDING = "embedding"
    RERANK = "rerank"


@dataclass
class TokenWindow:
    """
    Token usage counter over a fixed window.

    `used <= limit` is a target: with plain check/update, concurrent callers
    admitted against the same `used` value can overshoot until their actual
    usage is recorded.
    """
    limit: int
    window_length: float
    window_start: float
    used: int = 0
    generation: int = 0

    def roll_if_expired(self, now: float) -> bool:
        """Start a new window when the current one has elapsed."""
        if now - self.window_start >= self.window_length:
            self.window_start = now
            self.used = 0
            self.generation += 1
            return True
        return False

    def wait_for(self, estimate: int, now: float) -> float:
        """
        Seconds to wait before `estimate` tokens may be spent.

        The first caller of a fresh window is always admitted, so an estimate
        larger than the whole limit proceeds after at most one window.
        """
        if self.roll_if_expired(now):
            return 0.0
        if self.used + estimate <= self.limit:
            return 0.0
        return max(0.0, self.window_length - (now - self.window_start))

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)


@dataclass(frozen=True)
class Reservation:
    """Estimated tokens recorded against a pool at admission time."""
    pool: ResourcePool
    tokens: int
    generation: int


class RateLimiter:
    """
    Async-safe limiter holding one TokenWindow per ResourcePool.

    Access to a pool is serialized by that pool's lock; the embedding and
    rerank pools never contend with each other. The limiter never raises.
    """

    def __init__(
        self,
        embedding_limit: int,
        rerank_limit: int,
        window_length: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._clock = clock
        self._sleep = sleep
        now = clock()
        self._windows: Dict[ResourcePool, TokenWindow] = {
            ResourcePool.EMBEDDING: TokenWindow(embedding_limit, window_length, now),
            ResourcePool.RERANK: TokenWindow(rerank_limit, window_length, now),
        }
        self._locks: Dict[ResourcePool, asyncio.Lock] = {
            pool: asyncio.Lock() for pool in ResourcePool
        }

        logger.debug(
            "rate_limiter_initialized",
            embedding_limit=embedding_limit,
            rerank_limit=rerank_limit,
            window_length=window_length,
        )

    @classmethod
    def from_settings(cls, config, **kwargs) -> "RateLimiter":
        return cls(
            embedding_limit=config.embedding_token_limit,
            rerank_limit=config.rerank_token_limit,
            window_length=config.rate_limit_window,
            **kwargs,
        )

    async def check(self, pool: ResourcePool, estimate: int) -> float:
        """
        Return how long (seconds) to wait before spending `estimate` tokens.

        Nothing is recorded: another caller checking before this caller's
        `update` sees the same `used` value.
        """
        pool = ResourcePool(pool)
        async with self._locks[pool]:
            wait = self._windows[pool].wait_for(max(0, estimate), self._clock())

        if wait > 0:
            logger.debug("rate_limit_wait_required", pool=pool.value, estimate=estimate, wait_seconds=wait)
        return wait

    async def reserve(
        self,
        pool: ResourcePool,
        estimate: int,
        force: bool = False,
    ) -> Union[Reservation, float]:
        """
        Admit and record `estimate` atomically, or return the wait in seconds.

        A returned Reservation must be handed back to `update` with the actual
        usage so the estimate is replaced rather than added to. With `force`,
        the estimate is recorded without checking the remaining budget.
        """
        pool = ResourcePool(pool)
        estimate = max(0, estimate)
        async with self._locks[pool]:
            window = self._windows[pool]
            wait = window.wait_for(estimate, self._clock())
            if wait > 0 and not force:
                return wait
            window.used += estimate
            return Reservation(pool=pool, tokens=estimate, generation=window.generation)

    async def acquire(self, pool: ResourcePool, estimate: int, reserve: bool = False) -> Optional[Reservation]:
        """
        Wait (cooperatively) until a call costing `estimate` may proceed.

        Without `reserve`, this is check-then-sleep: the caller proceeds after
        one wait and nothing is recorded until `update`. With `reserve`, the
        estimate is recorded on admission and the returned Reservation must be
        passed to `update` (or `release` on failure).
        """
        pool = ResourcePool(pool)
        if not reserve:
            wait = await self.check(pool, estimate)
            if wait > 0:
                logger.info("rate_limit_reached", pool=pool.value, wait_seconds=round(wait, 3))
                await self._sleep(wait)
            return None

        oversized = estimate > self._windows[pool].limit
        waited = False
        while True:
            # An estimate above the whole limit never fits; it goes in once a window has passed
            outcome = await self.reserve(pool, estimate, force=oversized and waited)
            if isinstance(outcome, Reservation):
                return outcome
            logger.info("rate_limit_reached", pool=pool.value, wait_seconds=round(outcome, 3))
            await self._sleep(outcome)
            waited = True

    async def update(
        self,
        pool: ResourcePool,
        actual_tokens: int,
        reservation: Optional[Reservation] = None,
    ) -> None:
        """Record the usage the service reported for a completed call."""
        pool = ResourcePool(pool)
        async with self._locks[pool]:
            window = self._windows[pool]
            window.roll_if_expired(self._clock())
            window.used += max(0, actual_tokens)
            if reservation is not None and reservation.generation == window.generation:
                window.used = max(0, window.used - reservation.tokens)

            logger.debug(
                "rate_limit_usage_recorded",
                pool=pool.value,
                actual_tokens=actual_tokens,
                used=window.used,
                limit=window.limit,
            )

    async def release(self, reservation: Reservation) -> None:
        """Return a reservation whose call failed without reported usage."""
        await self.update(reservation.pool, 0, reservation)

    def snapshot(self) -> Dict[str, Dict[str, float]]:
        """Point-in-time view of every pool, for diagnostics."""
        return {
            pool.value: {
                "limit": window.limit,
                "used": window.used,
                "remaining": window.remaining,
                "window_start": window.window_start,
                "window_length": window.window_length,
            }
            for pool, window in self._windows.items()
        }
