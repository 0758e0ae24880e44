"""Reporters receiving the terminal outcome of each orchestration run."""

from __future__ import annotations

import logging
import threading

import click

from shop_stats.core.config import ObservabilityConfig
from shop_stats.core.enums import ReporterKind
from shop_stats.core.errors import ConfigError
from shop_stats.core.interfaces import IReporter
from shop_stats.core.models import OrderStatistics

logger = logging.getLogger(__name__)


class ConsoleReporter:
    """Prints results to stdout and failures to stderr.

    Runs may finish on different worker threads, so output is serialized
    to keep multi-line results intact.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def report_success(self, statistics: OrderStatistics) -> None:
        with self._lock:
            click.echo(statistics.display())

    def report_failure(self, description: str) -> None:
        with self._lock:
            click.secho(description, err=True, fg="red")


class LoggingReporter:
    """Reports through the structured log only (headless runs)."""

    def report_success(self, statistics: OrderStatistics) -> None:
        logger.info("Order statistics", extra=statistics.model_dump())

    def report_failure(self, description: str) -> None:
        logger.error("Statistics run failed: %s", description)


def create_reporter(config: ObservabilityConfig) -> IReporter:
    """Create the reporter named by ``config.reporter``."""
    if config.reporter == ReporterKind.CONSOLE:
        return ConsoleReporter()
    if config.reporter == ReporterKind.LOG:
        return LoggingReporter()
    raise ConfigError(f"Unknown reporter: {config.reporter!r}")
