"""Order aggregation.

Orders are reduced to an :class:`Accumulator` by folding from
:data:`IDENTITY` with :meth:`Accumulator.combine`. ``combine`` is
associative and commutative, so partial accumulators computed in any
grouping or order merge to the same result.
"""

from __future__ import annotations

from functools import reduce
from typing import Iterable, NamedTuple

from shop_stats.core.models import Order, OrderStatistics


class Accumulator(NamedTuple):
    total: int
    count: int

    @classmethod
    def of(cls, order: Order) -> Accumulator:
        return cls(order.amount, 1)

    def combine(self, other: Accumulator) -> Accumulator:
        return Accumulator(self.total + other.total, self.count + other.count)


IDENTITY = Accumulator(0, 0)


def aggregate(orders: Iterable[Order]) -> Accumulator:
    return reduce(Accumulator.combine, map(Accumulator.of, orders), IDENTITY)


def average(total: int, count: int) -> float:
    """Mean order amount; ``0.0`` for a user without orders."""
    if count == 0:
        return 0.0
    return total / count


def summarize(username: str, orders: Iterable[Order]) -> OrderStatistics:
    acc = aggregate(orders)
    return OrderStatistics(
        username=username,
        order_count=acc.count,
        total_amount=acc.total,
        average_amount=average(acc.total, acc.count),
    )
