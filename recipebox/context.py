"""Application context built once at startup and shared by every request."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .db import make_engine, make_session_factory
from .services.sessions import SessionManager
from .services.storage import LocalStorage
from .services.uploads import UploadHandler
from .settings import Settings


@dataclass(frozen=True)
class AppContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    sessions: SessionManager
    uploads: UploadHandler

    @classmethod
    def from_settings(cls, settings: Settings, engine: Optional[Engine] = None) -> "AppContext":
        engine = engine or make_engine(settings.database_url)
        storage = LocalStorage(Path(settings.upload_root), url_prefix="/uploads")
        return cls(
            settings=settings,
            engine=engine,
            session_factory=make_session_factory(engine),
            sessions=SessionManager(
                secret_key=settings.session_key,
                max_age=settings.session_max_age,
                cookie_name=settings.session_cookie_name,
                cookie_secure=settings.session_cookie_secure,
            ),
            uploads=UploadHandler(storage, max_bytes=settings.max_upload_bytes),
        )


@dataclass(frozen=True)
class CallerIdentity:
    """Who is making the request, resolved once by the access gate."""
    user_id: int
    username: str
