"""Signed client-side sessions.

Token payload is ``{"uid": <user id>, "sid": <random session id>}``, signed
and timestamped with itsdangerous. Logout stores the ``sid`` in
``revoked_sessions`` so a replayed cookie is rejected until it would have
expired anyway.
"""

import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Request
from fastapi.responses import Response
from itsdangerous import BadSignature, URLSafeTimedSerializer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import PersistenceFailure
from ..models import RevokedSession, User

logger = logging.getLogger("recipebox.sessions")

SALT = "recipebox.session"


class SessionManager:
    def __init__(
        self,
        secret_key: str,
        max_age: int,
        cookie_name: str = "session",
        cookie_secure: bool = False,
    ):
        self.serializer = URLSafeTimedSerializer(secret_key, salt=SALT)
        self.max_age = max_age
        self.cookie_name = cookie_name
        self.cookie_secure = cookie_secure

    def establish(self, user_id: int) -> str:
        return self.serializer.dumps({"uid": user_id, "sid": uuid.uuid4().hex})

    def _load(self, token: Optional[str]) -> Optional[dict[str, Any]]:
        if not token:
            return None
        try:
            payload = self.serializer.loads(token, max_age=self.max_age)
        except BadSignature:
            # Covers tampered and expired (SignatureExpired subclasses BadSignature)
            return None
        if not isinstance(payload, dict):
            return None
        if not isinstance(payload.get("uid"), int) or not isinstance(payload.get("sid"), str):
            return None
        return payload

    def resolve(self, request: Request, db: Session) -> Optional[int]:
        """User id of the session on this request, or None for anonymous."""
        payload = self._load(request.cookies.get(self.cookie_name))
        if payload is None:
            return None
        try:
            if db.get(RevokedSession, payload["sid"]) is not None:
                return None
            if db.get(User, payload["uid"]) is None:
                return None
        except SQLAlchemyError as e:
            raise PersistenceFailure(str(e))
        return payload["uid"]

    def revoke(self, request: Request, db: Session) -> None:
        payload = self._load(request.cookies.get(self.cookie_name))
        if payload is None:
            return

        now = datetime.now(timezone.utc)
        try:
            db.query(RevokedSession).filter(RevokedSession.expires_at < now).delete(
                synchronize_session=False
            )
            if db.get(RevokedSession, payload["sid"]) is None:
                db.add(RevokedSession(
                    sid=payload["sid"],
                    expires_at=now + timedelta(seconds=self.max_age),
                ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailure(str(e))
        logger.info(f"Revoked session for user {payload['uid']}")

    def set_cookie(self, response: Response, token: str) -> None:
        response.set_cookie(
            self.cookie_name,
            token,
            max_age=self.max_age,
            httponly=True,
            samesite="lax",
            secure=self.cookie_secure,
        )

    def clear_cookie(self, response: Response) -> None:
        response.delete_cookie(
            self.cookie_name,
            httponly=True,
            samesite="lax",
            secure=self.cookie_secure,
        )
