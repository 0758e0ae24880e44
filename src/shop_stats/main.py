"""Application bootstrap and discipline routing.

Wires settings, store, execution context, data access and orchestrator
together, and runs single statistics requests or the demo sequence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from .concurrency.async_result import AsyncResult
from .concurrency.execution import ExecutionContext
from .core.config import Settings, load_settings
from .core.enums import Discipline
from .core.interfaces import IDataAccess, IReporter
from .core.models import Credentials
from .core.result import Outcome
from .access.data_access import CallbackDataAccess, ExecutorDataAccess
from .observability.logger import setup_logging
from .observability.reporting import create_reporter
from .pipeline.orchestrator import Orchestrator
from .store.factory import create_callback_store, create_document_store
from .store.redis_store import AsyncRedisDocumentStore
from .store.seed import LISA, seed_demo_data, seed_demo_data_async

logger = logging.getLogger(__name__)

# Credentials used by the demo: success, bad password, wrong-case username
DEMO_CREDENTIALS: list[Credentials] = [
    Credentials(username=LISA, password="password"),
    Credentials(username=LISA, password="bad_password"),
    Credentials(username=LISA.upper(), password="password"),
]


@dataclass
class Application:
    """Wired components of one process. Close once, after the last run."""

    settings: Settings
    context: ExecutionContext
    data_access: IDataAccess
    orchestrator: Orchestrator
    _closers: list[Callable[[], Any]] = field(default_factory=list)
    _closed: bool = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.context.shutdown_when_idle(self.settings.execution.shutdown_timeout_seconds)
        for closer in reversed(self._closers):
            closer()
        logger.debug("Application closed")


def build_application(settings: Settings, reporter: IReporter | None = None) -> Application:
    """Create the store, data access and orchestrator for *settings*."""
    context = ExecutionContext(settings.execution.worker_count)
    closers: list[Callable[[], Any]] = []
    data_access: IDataAccess

    if settings.discipline == Discipline.CALLBACK:
        callback_store = create_callback_store(settings.store)
        async_store = callback_store.store
        if settings.seed_demo_data:
            callback_store.call(seed_demo_data_async(async_store))
        # Closers run in reverse: the asyncio client closes before its loop stops.
        closers.append(callback_store.close)
        if isinstance(async_store, AsyncRedisDocumentStore):
            closers.append(lambda: callback_store.call(async_store.close()))
        data_access = CallbackDataAccess(callback_store)
    else:
        store = create_document_store(settings.store)
        if settings.seed_demo_data:
            seed_demo_data(store)
        closer = getattr(store, "close", None)
        if closer is not None:
            closers.append(closer)
        data_access = ExecutorDataAccess(store, context)

    orchestrator = Orchestrator.build(
        data_access,
        reporter or create_reporter(settings.observability),
        context,
        settings.discipline,
    )
    logger.info(
        "Application ready",
        extra={
            "discipline": settings.discipline.value,
            "backend": settings.store.backend.value,
            "workers": context.worker_count,
        },
    )
    return Application(settings, context, data_access, orchestrator, closers)


def _setup_logging(settings: Settings) -> None:
    setup_logging(
        level=settings.observability.log_level,
        format=settings.observability.log_format,
    )


def run_statistics(
    credentials: Credentials,
    config_path: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> Outcome:
    """Run one statistics request and wait for it."""
    settings = load_settings(config_path=config_path, overrides=overrides)
    _setup_logging(settings)

    app = build_application(settings)
    try:
        return app.orchestrator.run_statistics_blocking(credentials)
    finally:
        app.close()


def run_demo(
    config_path: str | None = None,
    overrides: dict[str, Any] | None = None,
    credentials: list[Credentials] | None = None,
) -> list[Outcome]:
    """Start the demo runs back to back, then shut down once all finished."""
    settings = load_settings(config_path=config_path, overrides=overrides)
    _setup_logging(settings)

    app = build_application(settings)
    runs: list[AsyncResult[None]] = []
    try:
        for creds in credentials or DEMO_CREDENTIALS:
            runs.append(app.orchestrator.run_statistics(creds))
    finally:
        app.close()
    return [run.await_blocking() for run in runs]


def seed(config_path: str | None = None, overrides: dict[str, Any] | None = None) -> int:
    """Write the demo data set into the configured store."""
    settings = load_settings(config_path=config_path, overrides=overrides)
    _setup_logging(settings)

    store = create_document_store(settings.store)
    try:
        return seed_demo_data(store)
    finally:
        closer = getattr(store, "close", None)
        if closer is not None:
            closer()
