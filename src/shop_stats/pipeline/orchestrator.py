"""End-to-end statistics run: log in, aggregate orders, report.

The order lookup is only constructed once login produced a username, and
every failure short-circuits to the terminal handler, which runs exactly
once per run and hands the outcome to the reporter.

Three disciplines share this chain:

- ``blocking``: the caller thread waits for login, then for the
  statistics, before reporting.
- ``composed``: ``then_compose`` chains the steps; the caller returns
  immediately.
- ``callback``: like ``composed``; the data access underneath is bridged
  from a callback-style store.
"""

from __future__ import annotations

import logging

from shop_stats.concurrency.async_result import AsyncResult
from shop_stats.concurrency.execution import ExecutionContext
from shop_stats.core.enums import Discipline
from shop_stats.core.errors import ExecutionContextClosed, describe_failure
from shop_stats.core.interfaces import IDataAccess, IReporter
from shop_stats.core.models import Credentials, OrderStatistics
from shop_stats.core.result import Ok, Outcome
from shop_stats.observability.logger import trace_context

from .auth import AuthFlow
from .statistics import StatisticsFlow

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs the login → statistics → report chain for one set of credentials."""

    def __init__(
        self,
        auth: AuthFlow,
        statistics: StatisticsFlow,
        reporter: IReporter,
        context: ExecutionContext,
        discipline: Discipline = Discipline.COMPOSED,
    ) -> None:
        self._auth = auth
        self._statistics = statistics
        self._reporter = reporter
        self._context = context
        self._discipline = discipline

    @classmethod
    def build(
        cls,
        data_access: IDataAccess,
        reporter: IReporter,
        context: ExecutionContext,
        discipline: Discipline = Discipline.COMPOSED,
    ) -> Orchestrator:
        return cls(AuthFlow(data_access), StatisticsFlow(data_access), reporter, context, discipline)

    @property
    def discipline(self) -> Discipline:
        return self._discipline

    def run_statistics(self, credentials: Credentials) -> AsyncResult[None]:
        """Start one run. Completes after the reporter was called.

        The returned result carries the run's failure, if any. Nothing
        raised while starting the run escapes; it becomes the run's failure.
        """
        with trace_context() as run_id:
            logger.info(
                "Calculating statistics for user %r",
                credentials.username,
                extra={"run_id": run_id, "discipline": self._discipline.value},
            )

            try:
                self._context.begin_run()
            except ExecutionContextClosed as exc:
                return (
                    AsyncResult.failed(exc, label=f"run {run_id}")
                    .when_complete(lambda statistics, failure: self._report(run_id, statistics, failure))
                    .then_apply(lambda _: None, label=f"run {run_id}")
                )

            def _terminal(statistics: OrderStatistics | None, failure: BaseException | None) -> None:
                try:
                    self._report(run_id, statistics, failure)
                finally:
                    self._context.end_run()

            try:
                chain = self._start_chain(credentials)
            except Exception as exc:
                logger.warning("Run could not start: %s", exc, extra={"run_id": run_id})
                chain = AsyncResult.failed(exc, label=f"run {run_id}")

            return chain.when_complete(_terminal).then_apply(lambda _: None, label=f"run {run_id}")

    def run_statistics_blocking(self, credentials: Credentials) -> Outcome:
        """Run and wait on the calling thread. Returns ``Ok(None)`` or ``Err(failure)``."""
        return self.run_statistics(credentials).await_blocking()

    def _start_chain(self, credentials: Credentials) -> AsyncResult[OrderStatistics]:
        if self._discipline == Discipline.BLOCKING:
            return self._chain_blocking(credentials)
        return self._auth.log_in(credentials).then_compose(self._statistics.process_orders_of)

    def _chain_blocking(self, credentials: Credentials) -> AsyncResult[OrderStatistics]:
        login = self._auth.log_in(credentials).await_blocking()
        if not isinstance(login, Ok):
            return AsyncResult.failed(login.error)
        statistics = self._statistics.process_orders_of(login.value)
        statistics.await_blocking()
        return statistics

    def _report(
        self,
        run_id: str,
        statistics: OrderStatistics | None,
        failure: BaseException | None,
    ) -> None:
        if failure is None and statistics is not None:
            logger.info(
                "Statistics ready for %r",
                statistics.username,
                extra={"run_id": run_id, "order_count": statistics.order_count},
            )
            self._reporter.report_success(statistics)
            return
        description = describe_failure(failure) if failure is not None else "no result"
        logger.info("Run failed: %s", description, extra={"run_id": run_id})
        self._reporter.report_failure(description)
