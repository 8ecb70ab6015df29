import logging
from functools import lru_cache

import bcrypt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import (
    DuplicateUsername,
    HashingFailure,
    InvalidCredentials,
    PersistenceFailure,
    ValidationError,
)
from ..models import User

logger = logging.getLogger("recipebox.credentials")

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> bytes:
    # Checked against when the username is unknown, so both failure paths cost one bcrypt run
    return bcrypt.hashpw(b"recipebox-dummy-password", bcrypt.gensalt(rounds))


class CredentialStore:
    """Registers users and verifies their passwords against bcrypt hashes."""

    def __init__(self, db: Session, rounds: int = 12):
        self.db = db
        self.rounds = rounds

    def register(self, username: str, password: str) -> int:
        candidate = password.encode("utf-8")
        if len(candidate) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        try:
            password_hash = bcrypt.hashpw(candidate, bcrypt.gensalt(self.rounds))
        except (ValueError, TypeError) as e:
            raise HashingFailure(f"Could not hash password: {e}")

        user = User(username=username, password_hash=password_hash.decode("ascii"))
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Signup rejected, username already taken: {username!r}")
            raise DuplicateUsername()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailure(str(e))

        logger.info(f"Registered user {user.id}")
        return user.id

    def authenticate(self, username: str, password: str) -> int:
        try:
            user = self.db.query(User).filter(User.username == username).first()
        except SQLAlchemyError as e:
            raise PersistenceFailure(str(e))

        candidate = password.encode("utf-8")
        if user is None:
            self._check(candidate, _dummy_hash(self.rounds))
            raise InvalidCredentials()

        if not self._check(candidate, user.password_hash.encode("ascii")):
            raise InvalidCredentials()
        return user.id

    @staticmethod
    def _check(candidate: bytes, hashed: bytes) -> bool:
        try:
            return bcrypt.checkpw(candidate, hashed)
        except ValueError as e:
            # Malformed stored hash or over-long candidate; treated as a mismatch
            logger.warning(f"Password check failed: {e}")
            return False

    def get_user(self, user_id: int) -> User | None:
        try:
            return self.db.get(User, user_id)
        except SQLAlchemyError as e:
            raise PersistenceFailure(str(e))
