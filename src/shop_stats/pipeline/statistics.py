"""Order statistics step: order lookup followed by aggregation."""

from __future__ import annotations

from shop_stats.concurrency.async_result import AsyncResult
from shop_stats.core.interfaces import IDataAccess
from shop_stats.core.models import Order, OrderStatistics

from .aggregator import summarize


class StatisticsFlow:
    def __init__(self, data_access: IDataAccess) -> None:
        self._data_access = data_access

    def process_orders_of(self, username: str) -> AsyncResult[OrderStatistics]:
        """Aggregate the orders of *username*. Lookup failures propagate unchanged."""

        def _summarize(orders: list[Order]) -> OrderStatistics:
            return summarize(username, orders)

        return self._data_access.find_orders_by_username(username).then_apply(
            _summarize, label=f"statistics of {username!r}"
        )
