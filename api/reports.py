"""
Report History API

Endpoints:
- GET /api/reports - Current user's last 20 reports
- GET /api/reports/{report_id} - One report (owner, or the guest session that created it)
- POST /api/reports/{report_id}/email - Email a report to the current user
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from lemonade.auth.config import get_auth_config
from lemonade.auth.dependencies import get_current_user, get_current_user_optional
from lemonade.auth.models import User
from lemonade.database.models import CompetitorReport
from lemonade.database.repository import get_report, list_user_reports
from lemonade.database.session import get_db
from lemonade.delivery import EmailDelivery

from api.dependencies import get_email_delivery

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/reports", tags=["Reports"])

HISTORY_LIMIT = 20


class EmailReportRequest(BaseModel):
    """Optional recipient override; defaults to the account email."""
    email: Optional[EmailStr] = None


def _load_owned_report(db: Session, report_id: str, user: Optional[User], session_id: Optional[str]) -> CompetitorReport:
    report = get_report(db, report_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")

    if report.user_id is not None:
        allowed = user is not None and user.id == report.user_id
    else:
        allowed = bool(session_id) and session_id == report.session_id

    if not allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied to this report")
    return report


@router.get("")
def list_reports(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Report history, newest first."""
    reports = list_user_reports(db, current_user.id, limit=HISTORY_LIMIT)
    return [report.to_dict() for report in reports]


@router.get("/{report_id}")
def get_report_by_id(
    report_id: str,
    request: Request,
    user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
):
    """Get a report by ID."""
    session_id = request.cookies.get(get_auth_config().session_cookie_name)
    return _load_owned_report(db, report_id, user, session_id).to_dict()


@router.post("/{report_id}/email")
async def email_report(
    report_id: str,
    body: Optional[EmailReportRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    delivery: EmailDelivery = Depends(get_email_delivery),
):
    """Send a report by email."""
    report = _load_owned_report(db, report_id, current_user, None)

    recipient = (body.email if body and body.email else None) or current_user.email
    if not recipient:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No email address on this account")

    if not delivery.configured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Email delivery is not configured")

    result = await delivery.send_report(recipient, report.title, report.summary, report.competitors)
    if not result.success:
        logger.error(f"Emailing report {report.id} failed: {result.error}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to send email")

    return {"success": True, "messageId": result.message_id, "email": recipient}
