"""Login, aggregation and orchestration steps."""

from shop_stats.pipeline.auth import AuthFlow
from shop_stats.pipeline.orchestrator import Orchestrator
from shop_stats.pipeline.statistics import StatisticsFlow

__all__ = ["AuthFlow", "Orchestrator", "StatisticsFlow"]
