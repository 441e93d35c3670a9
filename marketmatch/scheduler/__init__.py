"""Background maintenance jobs."""

from .service import SchedulerService

__all__ = ["SchedulerService"]
