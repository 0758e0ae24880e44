from shop_stats.access.data_access import CallbackDataAccess, ExecutorDataAccess

__all__ = ["CallbackDataAccess", "ExecutorDataAccess"]
