from .application import AnalyticsService
from .config import AnalyticsConfig

__all__ = ["AnalyticsService", "AnalyticsConfig"]
