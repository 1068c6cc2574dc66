from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


class Database:
    """Connection pool and session factory shared by one application instance."""

    def __init__(self, database_url: str, *, engine: Engine | None = None):
        if engine is None:
            connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
            engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
        self.engine = engine
        self.session_factory: sessionmaker[Session] = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

    def session(self) -> Generator[Session, None, None]:
        """Yield a session per request; the caller decides when to commit."""

        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for scripts or background tasks."""

        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
