"""Утилиты для задач."""
from jobs.utils.database import create_task_session_maker

__all__ = [
    "create_task_session_maker",
]
