from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from match_engine.config.settings import get_settings

_engine: AsyncEngine | None = None


def get_engine() -> AsyncEngine:
    """Return the process-wide async engine, creating it on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            pool_pre_ping=True,
        )
    return _engine


async def dispose_engine() -> None:
    """Close pooled connections; the next ``get_engine`` call starts fresh."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
