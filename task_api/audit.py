"""
Audit logging. Security-relevant events only; no tokens, codes, passwords or request bodies.
"""
import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from task_api.models import AuditLog

logger = logging.getLogger(__name__)

EVENT_LOGIN_OK = "login_ok"
EVENT_LOGIN_FAIL = "login_fail"
EVENT_CODE_ISSUED = "code_issued"
EVENT_TOKEN_ISSUED = "token_issued"
EVENT_TOKEN_EXCHANGE_FAIL = "token_exchange_fail"
EVENT_CLEANUP = "cleanup"

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"


def log_audit(
    db: Session,
    event_type: str,
    *,
    client_id: str | None = None,
    user_id: uuid.UUID | None = None,
    outcome: str = OUTCOME_SUCCESS,
) -> None:
    """Append one audit record. Never log tokens or passwords."""
    db.add(
        AuditLog(
            event_type=event_type,
            client_id=client_id,
            user_id=user_id,
            outcome=outcome,
        )
    )
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        # An audit write failure never fails the operation being audited
        logger.error("Failed to write audit event %s", event_type, exc_info=True)


class AuditTrail:
    """Audit sink bound to a session, handed to OAuthManager."""

    def __init__(self, db: Session):
        self.db = db

    def __call__(self, event_type: str, **fields) -> None:
        log_audit(self.db, event_type, **fields)
