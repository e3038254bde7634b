from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


def make_engine(
    database_url: Optional[str] = None,
    echo: bool = False,
    timeout: Optional[float] = None,
) -> Engine:
    """Create an engine for ``database_url``.

    When ``database_url`` is omitted the URL comes from
    :meth:`spinwheel.config.Settings.from_env` (``DB_URL`` or the local
    ``dev.db``). ``timeout`` bounds how long a SQLite connection waits on a
    locked database before raising instead of hanging.
    """
    if database_url is None:
        from spinwheel.config import Settings

        database_url = Settings.from_env().database_url
    connect_args = {}
    if database_url.startswith("sqlite") and timeout is not None:
        connect_args["timeout"] = timeout
    return create_engine(
        database_url,
        echo=echo,
        future=True,
        connect_args=connect_args,
    )


def get_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,  # spin records are read after their transaction commits
        future=True,
    )
