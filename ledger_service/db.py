from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

def _driver_timeouts(backend: str, timeout: float) -> dict:
    """connect_args that make the driver itself give up after `timeout` seconds.

    A driver timeout aborts the statement, so the surrounding transaction is
    rolled back and never commits behind the caller's back.
    """
    if backend == "sqlite":
        # how long to wait on another connection's lock before "database is locked"
        return {"timeout": timeout}
    if backend == "mysql":
        seconds = max(1, int(round(timeout)))
        return {"connect_timeout": seconds, "read_timeout": seconds, "write_timeout": seconds}
    if backend == "postgresql":
        return {"connect_timeout": max(1, int(round(timeout))),
                "options": f"-c statement_timeout={int(timeout * 1000)}"}
    return {}

def build_engine(url: str, timeout: float = 5.0):
    backend = make_url(url).get_backend_name()
    connect_args = _driver_timeouts(backend, timeout)
    if backend == "sqlite":
        # requests are served from executor threads; an in-memory db must share one connection
        connect_args["check_same_thread"] = False
        kwargs = {"connect_args": connect_args}
        if make_url(url).database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True, isolation_level="READ COMMITTED")

def build_sessionmaker(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)
