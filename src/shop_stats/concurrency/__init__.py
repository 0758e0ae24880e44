"""Promises and the shared worker pool."""

from shop_stats.concurrency.async_result import AsyncResult, completing_callback
from shop_stats.concurrency.execution import ExecutionContext

__all__ = ["AsyncResult", "ExecutionContext", "completing_callback"]
