"""FastAPI dependencies for RecipeBox.

Provides:
- Application context and per-request database session
- Credential store and recipe repository bound to that session
- Access gate: caller identity resolution (required or optional)
"""

from typing import Iterator, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .context import AppContext, CallerIdentity
from .errors import Unauthenticated
from .services.credentials import CredentialStore
from .services.recipes import RecipeRepository


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_db(ctx: AppContext = Depends(get_context)) -> Iterator[Session]:
    db = ctx.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_credentials(
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> CredentialStore:
    return CredentialStore(db, rounds=ctx.settings.bcrypt_rounds)


def get_recipes(
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> RecipeRepository:
    return RecipeRepository(db, ctx.uploads)


def optional_identity(
    request: Request,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    credentials: CredentialStore = Depends(get_credentials),
) -> Optional[CallerIdentity]:
    """Resolve the session cookie into a caller identity, or None for anonymous."""
    user_id = ctx.sessions.resolve(request, db)
    if user_id is None:
        return None
    user = credentials.get_user(user_id)
    if user is None:
        return None
    return CallerIdentity(user_id=user.id, username=user.username)


def require_identity(
    identity: Optional[CallerIdentity] = Depends(optional_identity),
) -> CallerIdentity:
    """Gate for protected operations: anonymous callers are sent to /login."""
    if identity is None:
        raise Unauthenticated()
    return identity


def limit_upload_size(
    request: Request,
    identity: CallerIdentity = Depends(require_identity),
    ctx: AppContext = Depends(get_context),
) -> CallerIdentity:
    """Reject multipart bodies declared larger than max_upload_bytes.

    Runs behind the access gate, so anonymous callers are redirected to
    /login whatever the body size.
    """
    ctx.uploads.check_request_size(request.headers.get("content-length"))
    return identity
