"""Test the login → statistics → report chain."""

from __future__ import annotations

import pytest

from shop_stats.access.data_access import CallbackDataAccess, ExecutorDataAccess
from shop_stats.concurrency.execution import ExecutionContext
from shop_stats.core.enums import Discipline
from shop_stats.core.errors import BadPassword, ExecutionContextClosed, StoreAccessError, UserNotFound
from shop_stats.core.models import Credentials
from shop_stats.core.result import Err, Ok
from shop_stats.observability.logger import get_trace_id
from shop_stats.pipeline.orchestrator import Orchestrator
from shop_stats.store.callback_store import EventLoopCallbackStore
from shop_stats.store.memory_store import AsyncInMemoryDocumentStore
from shop_stats.store.seed import seed_demo_data_async

EXECUTOR_DISCIPLINES = [Discipline.BLOCKING, Discipline.COMPOSED]


@pytest.mark.parametrize("discipline", EXECUTOR_DISCIPLINES)
class TestRunStatistics:
    def test_success_reports_statistics(self, make_orchestrator, memory_store, reporter, lisa_credentials, discipline):
        orchestrator = make_orchestrator(memory_store, discipline)
        outcome = orchestrator.run_statistics_blocking(lisa_credentials)

        assert outcome == Ok(None)
        assert reporter.wait_for(1)
        assert reporter.failures == []
        [stats] = reporter.successes
        assert stats.username == "lisa"
        assert stats.order_count == 2
        assert stats.total_amount == 40
        assert stats.average_amount == pytest.approx(20.0)

    def test_bad_password_never_looks_up_orders(
        self, make_orchestrator, recording_store, reporter, discipline
    ):
        orchestrator = make_orchestrator(recording_store, discipline)
        outcome = orchestrator.run_statistics_blocking(
            Credentials(username="lisa", password="bad_password")
        )

        assert isinstance(outcome, Err)
        assert isinstance(outcome.error, BadPassword)
        assert reporter.successes == []
        assert reporter.failures == ["BadPassword: bad password for user 'lisa'"]
        assert recording_store.calls_of("lookup_many") == []

    def test_wrong_case_user_not_found(self, make_orchestrator, recording_store, reporter, discipline):
        orchestrator = make_orchestrator(recording_store, discipline)
        outcome = orchestrator.run_statistics_blocking(
            Credentials(username="LISA", password="password")
        )

        assert isinstance(outcome.error, UserNotFound)
        assert reporter.failures == ["UserNotFound: no user named 'LISA'"]
        assert recording_store.calls_of("lookup_many") == []

    def test_orders_lookup_uses_canonical_name(self, make_orchestrator, recording_store, lisa_credentials, discipline):
        make_orchestrator(recording_store, discipline).run_statistics_blocking(lisa_credentials)
        assert recording_store.calls_of("lookup_many") == [("lookup_many", "orders", "username", "lisa")]

    def test_user_store_failure_reported_once(self, make_orchestrator, failing_store, reporter, lisa_credentials, discipline):
        outcome = make_orchestrator(failing_store, discipline).run_statistics_blocking(lisa_credentials)

        assert isinstance(outcome.error, StoreAccessError)
        assert reporter.total == 1
        assert reporter.failures[0].startswith("StoreAccessError: find user 'lisa' failed")

    def test_orders_store_failure_reported_once(
        self, make_orchestrator, orders_failing_store, reporter, lisa_credentials, discipline
    ):
        outcome = make_orchestrator(orders_failing_store, discipline).run_statistics_blocking(lisa_credentials)

        assert isinstance(outcome.error, StoreAccessError)
        assert reporter.successes == []
        assert len(reporter.failures) == 1

    def test_failed_run_does_not_block_next_run(
        self, make_orchestrator, memory_store, reporter, lisa_credentials, discipline
    ):
        orchestrator = make_orchestrator(memory_store, discipline)
        orchestrator.run_statistics_blocking(Credentials(username="lisa", password="nope"))
        outcome = orchestrator.run_statistics_blocking(lisa_credentials)

        assert outcome == Ok(None)
        assert len(reporter.failures) == 1
        assert len(reporter.successes) == 1

    def test_runs_are_released(self, make_orchestrator, memory_store, execution_context, lisa_credentials, discipline):
        orchestrator = make_orchestrator(memory_store, discipline)
        orchestrator.run_statistics_blocking(lisa_credentials)
        orchestrator.run_statistics_blocking(Credentials(username="x", password="y"))
        assert execution_context.wait_idle(timeout=2)
        assert execution_context.outstanding_runs == 0


class TestComposedDiscipline:
    def test_returns_before_completion(self, gated_store, reporter, lisa_credentials):
        context = ExecutionContext(worker_count=2)
        store = gated_store
        orchestrator = Orchestrator.build(
            ExecutorDataAccess(store, context), reporter, context, Discipline.COMPOSED
        )
        try:
            run = orchestrator.run_statistics(lisa_credentials)
            assert not run.is_done
            assert reporter.total == 0
            assert context.outstanding_runs == 1
            store.release.set()
            assert run.await_blocking(timeout=2) == Ok(None)
            assert reporter.total == 1
        finally:
            store.release.set()
            context.shutdown_when_idle(timeout=2)


class TestClosedContext:
    def test_run_after_shutdown_reports_failure(self, memory_store, reporter, lisa_credentials):
        context = ExecutionContext(worker_count=1)
        orchestrator = Orchestrator.build(ExecutorDataAccess(memory_store, context), reporter, context)
        context.shutdown()

        outcome = orchestrator.run_statistics_blocking(lisa_credentials)

        assert isinstance(outcome.error, ExecutionContextClosed)
        assert reporter.total == 1
        assert reporter.failures[0].startswith("ExecutionContextClosed")


class TestReporterFailure:
    def test_reporter_exception_still_releases_run(self, memory_store, execution_context, lisa_credentials):
        class _BrokenReporter:
            def report_success(self, statistics):
                raise RuntimeError("display down")

            def report_failure(self, description):
                raise RuntimeError("display down")

        orchestrator = Orchestrator.build(
            ExecutorDataAccess(memory_store, execution_context), _BrokenReporter(), execution_context
        )
        outcome = orchestrator.run_statistics_blocking(lisa_credentials)
        assert outcome == Ok(None)
        assert execution_context.wait_idle(timeout=2)

    def test_reporter_exception_on_closed_context_is_contained(self, memory_store, lisa_credentials):
        class _BrokenReporter:
            def report_success(self, statistics):
                raise RuntimeError("display down")

            def report_failure(self, description):
                raise RuntimeError("display down")

        context = ExecutionContext(worker_count=1)
        orchestrator = Orchestrator.build(
            ExecutorDataAccess(memory_store, context), _BrokenReporter(), context
        )
        context.shutdown()

        run = orchestrator.run_statistics(lisa_credentials)

        assert isinstance(run.await_blocking(timeout=2).error, ExecutionContextClosed)
        assert context.outstanding_runs == 0


class TestCallbackDiscipline:
    def test_success_reports_statistics(self, make_callback_orchestrator, recording_callback_store, reporter, lisa_credentials):
        outcome = make_callback_orchestrator(recording_callback_store).run_statistics_blocking(lisa_credentials)

        assert outcome == Ok(None)
        [stats] = reporter.successes
        assert (stats.order_count, stats.total_amount) == (2, 40)
        assert recording_callback_store.calls_of("lookup_many") == [("lookup_many", "orders", "username", "lisa")]

    def test_bad_password_never_looks_up_orders(self, make_callback_orchestrator, recording_callback_store, reporter):
        outcome = make_callback_orchestrator(recording_callback_store).run_statistics_blocking(
            Credentials(username="lisa", password="bad_password")
        )

        assert isinstance(outcome.error, BadPassword)
        assert reporter.failures == ["BadPassword: bad password for user 'lisa'"]
        assert recording_callback_store.calls_of("lookup_one") == [("lookup_one", "users", "lisa")]
        assert recording_callback_store.calls_of("lookup_many") == []

    def test_wrong_case_never_looks_up_orders(self, make_callback_orchestrator, recording_callback_store, reporter):
        outcome = make_callback_orchestrator(recording_callback_store).run_statistics_blocking(
            Credentials(username="LISA", password="password")
        )

        assert isinstance(outcome.error, UserNotFound)
        assert reporter.failures == ["UserNotFound: no user named 'LISA'"]
        assert recording_callback_store.calls_of("lookup_many") == []

    def test_user_lookup_raising_fails_run(
        self, make_callback_orchestrator, raising_callback_store, reporter, execution_context, lisa_credentials
    ):
        run = make_callback_orchestrator(raising_callback_store).run_statistics(lisa_credentials)

        outcome = run.await_blocking(timeout=2)
        assert isinstance(outcome.error, StoreAccessError)
        assert isinstance(outcome.error.__cause__, ConnectionError)
        assert reporter.total == 1
        assert reporter.failures[0].startswith("StoreAccessError: find user 'lisa' failed")
        assert execution_context.wait_idle(timeout=0.5)

    def test_orders_lookup_raising_fails_run(
        self, make_callback_orchestrator, orders_raising_callback_store, reporter, execution_context, lisa_credentials
    ):
        outcome = make_callback_orchestrator(orders_raising_callback_store).run_statistics_blocking(lisa_credentials)

        assert isinstance(outcome.error, StoreAccessError)
        assert reporter.successes == []
        assert len(reporter.failures) == 1
        assert execution_context.wait_idle(timeout=0.5)


class _RaisingDataAccess:
    """Data access whose calls raise before returning a result."""

    def find_user_by_name(self, name):
        raise RuntimeError("no connection")

    def find_orders_by_username(self, username):
        raise RuntimeError("no connection")


@pytest.mark.parametrize("discipline", [Discipline.BLOCKING, Discipline.COMPOSED, Discipline.CALLBACK])
class TestChainConstructionFailure:
    def test_failure_reported_and_run_released(self, execution_context, reporter, lisa_credentials, discipline):
        orchestrator = Orchestrator.build(_RaisingDataAccess(), reporter, execution_context, discipline)

        run = orchestrator.run_statistics(lisa_credentials)

        outcome = run.await_blocking(timeout=2)
        assert isinstance(outcome, Err)
        assert isinstance(outcome.error, RuntimeError)
        assert reporter.failures == ["RuntimeError: no connection"]
        assert execution_context.outstanding_runs == 0


class _TraceRecordingStore:
    def __init__(self, inner) -> None:
        self._inner = inner
        self.seen: list[str] = []

    def lookup_one(self, collection, key):
        self.seen.append(get_trace_id())
        return self._inner.lookup_one(collection, key)

    def lookup_many(self, collection, field, value):
        self.seen.append(get_trace_id())
        return self._inner.lookup_many(collection, field, value)


class _TraceRecordingReporter:
    def __init__(self) -> None:
        self.seen: list[str] = []

    def report_success(self, statistics):
        self.seen.append(get_trace_id())

    def report_failure(self, description):
        self.seen.append(get_trace_id())


class TestTraceContext:
    def test_run_id_follows_work_onto_pool_threads(self, memory_store, execution_context):
        store = _TraceRecordingStore(memory_store)
        reporter = _TraceRecordingReporter()
        orchestrator = Orchestrator.build(
            ExecutorDataAccess(store, execution_context), reporter, execution_context, Discipline.COMPOSED
        )
        caller_id = get_trace_id()

        for credentials in (Credentials(username="lisa", password="password"), Credentials(username="peter", password="secret")):
            assert orchestrator.run_statistics(credentials).await_blocking(timeout=2) == Ok(None)

        first_run, second_run = store.seen[0], store.seen[2]
        assert store.seen == [first_run, first_run, second_run, second_run]
        assert first_run != second_run
        assert caller_id not in store.seen
        assert reporter.seen == [first_run, second_run]
        assert get_trace_id() == caller_id

    def test_run_id_follows_store_callbacks(self, execution_context):
        callback_store = EventLoopCallbackStore(AsyncInMemoryDocumentStore(latency_ms=5))
        callback_store.call(seed_demo_data_async(callback_store.store))
        reporter = _TraceRecordingReporter()
        orchestrator = Orchestrator.build(
            CallbackDataAccess(callback_store), reporter, execution_context, Discipline.CALLBACK
        )
        caller_id = get_trace_id()
        try:
            for _ in range(2):
                orchestrator.run_statistics_blocking(Credentials(username="lisa", password="password"))
        finally:
            callback_store.close()

        first_id, second_id = reporter.seen
        assert first_id != second_id
        assert caller_id not in (first_id, second_id)
        assert get_trace_id() == caller_id
