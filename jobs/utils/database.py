"""Инициализация базы данных для фоновых задач."""
from sqlalchemy.pool import NullPool

from app.config.database import create_engine, create_session_maker


def create_task_session_maker():
    """
    Создает session maker для задач.

    NullPool: каждый вызов asyncio.run() получает свои соединения,
    без привязки к чужому event loop.
    """
    engine = create_engine(poolclass=NullPool)
    return engine, create_session_maker(engine)
