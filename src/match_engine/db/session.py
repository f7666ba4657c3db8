from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from match_engine.db.engine import dispose_engine, get_engine

_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Shared session factory.

    Services open their own sessions from it and own the transaction
    boundaries (``async with factory() as session, session.begin()``).
    Objects stay usable after commit so profiles can be read outside the
    transaction.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def close_db() -> None:
    """Drop the cached factory and dispose of the engine behind it."""
    global _session_factory
    _session_factory = None
    await dispose_engine()
