"""
Repositories over the credential tables. Each store is bound to one SQLAlchemy Session (one per request).

Codes are consumed with a conditional DELETE: of two requests that both found the same live code,
only the one whose DELETE actually removed the row gets True back. That is the whole single-use
guarantee; no in-process locking is involved.
"""
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from task_api.errors import EmailAlreadyRegistered, StoreUnavailable
from task_api.models import AccessToken, AuthorizationCode, User

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(db: Session, operation: str):
    """Roll back and surface any database failure as StoreUnavailable."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Store operation %s failed: %s", operation, type(e).__name__, exc_info=True)
        raise StoreUnavailable() from e


class UserStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> User | None:
        with _store_errors(self.db, "user.find_by_email"):
            return self.db.scalars(select(User).where(User.email == email)).first()

    def find_by_id(self, user_id: uuid.UUID) -> User | None:
        with _store_errors(self.db, "user.find_by_id"):
            return self.db.get(User, user_id)

    def create(self, email: str, password_hash: str) -> User:
        user = User(email=email, password_hash=password_hash)
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError as e:
            # Unique email lost a race with a concurrent registration
            self.db.rollback()
            raise EmailAlreadyRegistered() from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store operation user.create failed: %s", type(e).__name__, exc_info=True)
            raise StoreUnavailable() from e
        self.db.refresh(user)
        return user


class AuthorizationCodeStore:
    def __init__(self, db: Session):
        self.db = db

    def create(self, record: AuthorizationCode) -> AuthorizationCode:
        with _store_errors(self.db, "code.create"):
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        return record

    def find_live(self, code: str, client_id: str, now: datetime) -> AuthorizationCode | None:
        with _store_errors(self.db, "code.find_live"):
            return self.db.scalars(
                select(AuthorizationCode).where(
                    AuthorizationCode.code == code,
                    AuthorizationCode.client_id == client_id,
                    AuthorizationCode.expires_at > now,
                )
            ).first()

    def delete(self, record: AuthorizationCode) -> bool:
        """Delete record; True only if this call removed it."""
        with _store_errors(self.db, "code.delete"):
            result = self.db.execute(
                delete(AuthorizationCode)
                .where(AuthorizationCode.id == record.id)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        return result.rowcount == 1

    def delete_expired(self, now: datetime) -> int:
        with _store_errors(self.db, "code.delete_expired"):
            result = self.db.execute(
                delete(AuthorizationCode)
                .where(AuthorizationCode.expires_at <= now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        return result.rowcount


class AccessTokenStore:
    def __init__(self, db: Session):
        self.db = db

    def create(self, record: AccessToken) -> AccessToken:
        with _store_errors(self.db, "token.create"):
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        return record

    def find_live(self, token: str, now: datetime) -> AccessToken | None:
        with _store_errors(self.db, "token.find_live"):
            return self.db.scalars(
                select(AccessToken).where(AccessToken.token == token, AccessToken.expires_at > now)
            ).first()

    def delete_expired(self, now: datetime) -> int:
        with _store_errors(self.db, "token.delete_expired"):
            result = self.db.execute(
                delete(AccessToken)
                .where(AccessToken.expires_at <= now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        return result.rowcount
