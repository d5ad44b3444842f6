"""
Bridge between Flask's worker threads and the async extraction pipeline.

One event loop runs in a daemon thread for the life of the process. The
shared browser, HTTP client and model client all live on that loop, so
concurrent requests share one browser.
"""
from __future__ import annotations

import asyncio
import atexit
import threading
from typing import Any, Coroutine, Optional, TypeVar

from ..config import Config
from ..extractors.generic import GenericExtractor
from ..extractors.headless import BrowserSession, HeadlessExtractor
from ..extractors.registry import SiteRegistry
from ..logger import get_logger
from ..models import ProductMetadata
from .fetcher import HttpFetcher
from .model_client import build_openai_client
from .orchestrator import MetadataOrchestrator, PhaseBudgets
from .url_classifier import UrlClassifier
from .validator import DataValidator
from .vision import VisionFallback

logger = get_logger(__name__)

T = TypeVar("T")


class AsyncRunner:
    """Owns an event loop running forever in a background thread."""

    def __init__(self, name: str = "wishfill-loop") -> None:
        self.loop = asyncio.new_event_loop()
        self._started = threading.Event()
        self._thread = threading.Thread(target=self._run_loop, daemon=True, name=name)
        self._thread.start()
        self._started.wait()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.call_soon(self._started.set)
        self.loop.run_forever()

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self.loop.is_closed()

    def run(self, coro: Coroutine[Any, Any, T], timeout: Optional[float] = None) -> T:
        """Run ``coro`` on the loop and block the calling thread for its result."""
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return future.result(timeout)

    def stop(self) -> None:
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)
        if not self._thread.is_alive():
            self.loop.close()


class ExtractionService:
    """
    Synchronous facade over ``MetadataOrchestrator`` for the web layer.

    Args:
        orchestrator: Pipeline to run; built from ``Config`` when omitted
        runner: Loop to run it on; a private one is started when omitted
    """

    def __init__(
        self,
        orchestrator: Optional[MetadataOrchestrator] = None,
        runner: Optional[AsyncRunner] = None,
    ) -> None:
        self.runner = runner or AsyncRunner()
        self._fetcher: Optional[HttpFetcher] = None
        self._session: Optional[BrowserSession] = None
        self._model_client = None
        self.orchestrator = orchestrator or self.runner.run(self._build())
        self._closed = False

    async def _build(self) -> MetadataOrchestrator:
        """Wire the pipeline from ``Config``; runs on the service loop."""
        self._fetcher = HttpFetcher()
        registry = SiteRegistry(self._fetcher)

        headless = None
        if Config.HEADLESS_ENABLED:
            self._session = BrowserSession()
            headless = HeadlessExtractor(self._session, registry=registry)

        if Config.VISION_ENABLED or Config.MODEL_VALIDATION_ENABLED:
            self._model_client = build_openai_client()

        orchestrator = MetadataOrchestrator(
            classifier=UrlClassifier(self._fetcher),
            registry=registry,
            generic=GenericExtractor(self._fetcher),
            headless=headless,
            vision=VisionFallback(self._model_client) if Config.VISION_ENABLED else None,
            validator=DataValidator(self._model_client),
            budgets=PhaseBudgets.from_config(),
        )
        logger.info(
            "Extraction pipeline ready (headless=%s, vision=%s, latency ceiling %.0fs)",
            headless is not None, orchestrator.vision is not None, orchestrator.budgets.ceiling,
        )
        return orchestrator

    def extract(self, url: str) -> ProductMetadata:
        """Run the whole pipeline for ``url``; never raises for extraction failures."""
        return self.runner.run(self.orchestrator.extract(url))

    async def _close_resources(self) -> None:
        if self._session is not None:
            await self._session.close()
        if self._fetcher is not None:
            await self._fetcher.aclose()
        if self._model_client is not None:
            await self._model_client.close()

    def shutdown(self) -> None:
        """Close the browser and clients, then stop the loop."""
        if self._closed:
            return
        self._closed = True
        try:
            self.runner.run(self._close_resources(), timeout=10)
        except Exception as e:
            logger.warning("Error while shutting down extraction service: %s", e)
        self.runner.stop()
        logger.info("Extraction service stopped")


def build_service() -> ExtractionService:
    """Create the process-wide service and stop it at interpreter exit."""
    service = ExtractionService()
    atexit.register(service.shutdown)
    return service
