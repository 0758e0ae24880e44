"""Enumerations used across the shop statistics service."""

from enum import Enum


class Discipline(str, Enum):
    """Concurrency discipline an orchestration run is executed under."""

    BLOCKING = "blocking"  # explicit wait on each lookup
    COMPOSED = "composed"  # then_apply / then_compose chain
    CALLBACK = "callback"  # callback-style store bridged into promises


class StoreBackend(str, Enum):
    MEMORY = "memory"
    REDIS = "redis"


class Collection(str, Enum):
    USERS = "users"
    ORDERS = "orders"


class ReporterKind(str, Enum):
    """Where terminal outcomes of runs are reported."""

    CONSOLE = "console"  # stdout / stderr
    LOG = "log"  # structured log only
