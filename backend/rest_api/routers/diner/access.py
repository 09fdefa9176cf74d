"""
Diner access router.

A customer joins a table by typing the session PIN the waiter gave them;
the answer is a table token that every other diner endpoint requires.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from shared.config.logging import audit_auth_event
from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.security.auth import sign_table_token
from shared.security.rate_limit import limiter, table_key
from shared.utils.schemas import PinAccessRequest, TableAccessResponse
from rest_api.routers._common import DOMAIN_ERRORS, raise_http_error
from rest_api.services.domain import SessionService


router = APIRouter(prefix="/api/diner", tags=["diner"])


@router.post("/tables/{table_id}/access", response_model=TableAccessResponse)
@limiter.limit(settings.pin_access_rate_limit, key_func=table_key)
def access_table(
    request: Request,
    table_id: int,
    body: PinAccessRequest,
    db: Session = Depends(get_db),
) -> TableAccessResponse:
    """
    Verify the PIN of the table's open session and issue a table token.

    Fails with 409 when the table has no open session and 401 on a wrong PIN.
    """
    service = SessionService(db)
    try:
        service.get_table(table_id)
        session = service.verify_session_pin(table_id, body.pin)
    except DOMAIN_ERRORS as e:
        audit_auth_event("PIN_ACCESS", success=False, reason=type(e).__name__, table_id=table_id)
        raise_http_error(e)

    audit_auth_event("PIN_ACCESS", table_id=table_id, session_id=session.id)

    return TableAccessResponse(
        table_token=sign_table_token(session.restaurant_id, session.table_id, session.id),
        session_id=session.id,
        table_id=session.table_id,
        restaurant_id=session.restaurant_id,
    )
