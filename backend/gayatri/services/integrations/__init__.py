from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
import logging
from typing import Any, Awaitable, Dict, Hashable, Optional

from .base import BasePlatformClient
from .instagram import InstagramClient
from .tiktok import TikTokClient
from ...core.errors import ServiceError

logger = logging.getLogger(__name__)


class Outcome:
    """Result of one settled job: either ``value`` or ``error`` is set."""

    __slots__ = ("value", "error")

    def __init__(self, value: Any = None, error: Optional[BaseException] = None) -> None:
        self.value = value
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None


class IntegrationRunner:
    """
    Registry + executor for the platform clients.

    - Instantiates each client once per runner.
    - Runs batches of platform calls concurrently and lets every job settle;
      one failing account never cancels the others.
    """

    def __init__(self, clients: Optional[Dict[str, BasePlatformClient]] = None) -> None:
        self._clients: Dict[str, BasePlatformClient] = clients or {
            "tiktok": TikTokClient(),
            "instagram": InstagramClient(),
        }

    @property
    def providers(self) -> list[str]:
        return list(self._clients)

    def get(self, provider: str) -> BasePlatformClient:
        client = self._clients.get((provider or "").lower())
        if client is None:
            raise ServiceError(f"Unsupported platform: {provider}")
        return client

    async def gather_settled(
        self, jobs: Dict[Hashable, Awaitable[Any]], provider: str | None = None
    ) -> Dict[Hashable, Outcome]:
        keys = list(jobs)
        results = await asyncio.gather(*(jobs[k] for k in keys), return_exceptions=True)

        outcomes: Dict[Hashable, Outcome] = {}
        for key, res in zip(keys, results):
            if isinstance(res, BaseException):
                logger.error(
                    "Platform job '%s' failed: %s",
                    key,
                    res,
                    exc_info=res,
                    extra={"connector": provider, "step": f"job:{key}"},
                )
                outcomes[key] = Outcome(error=res)
            else:
                outcomes[key] = Outcome(value=res)
        return outcomes

    def run(self, coro: Awaitable[Any]) -> Any:
        """Drive a coroutine from synchronous code (Celery workers, sync routes)."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(coro)
        # Already inside a loop: give the coroutine its own loop on a worker thread
        with ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def get_integrations() -> IntegrationRunner:
    return IntegrationRunner()
