"""Push notification fan-out package exports."""

from .fanout import FanoutCoordinator
from .reporter import NotificationSummary

__all__ = ["FanoutCoordinator", "NotificationSummary"]
