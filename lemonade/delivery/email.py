"""
Email Delivery Module

Sends reports via Resend email service.
"""

import html
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import resend

from lemonade.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    """Result of email delivery."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def _list_html(items: List[Any]) -> str:
    if not items:
        return ""
    rows = "".join(f"<li>{html.escape(str(item))}</li>" for item in items)
    return f"<ul>{rows}</ul>"


def render_report_html(title: str, summary: str, competitors: List[str]) -> str:
    """
    HTML body for a report.

    JSON summaries get their sections laid out; anything else (digest
    markdown) is shown as plain paragraphs.
    """
    try:
        analysis: Dict[str, Any] = json.loads(summary)
        if not isinstance(analysis, dict):
            raise ValueError("summary is not an object")
    except ValueError:
        analysis = {}

    sections = []
    if analysis:
        if analysis.get("executive_summary"):
            sections.append(
                f"<h2>Executive Summary</h2><p>{html.escape(str(analysis['executive_summary']))}</p>"
            )
        for competitor in analysis.get("competitors") or []:
            if not isinstance(competitor, dict):
                continue
            name = html.escape(str(competitor.get("competitor", "")))
            activity = html.escape(str(competitor.get("activity_level", "")))
            sections.append(
                f"<h3>{name} <small>({activity} activity)</small></h3>"
                f"{_list_html(competitor.get('recent_developments') or [])}"
                f"{_list_html(competitor.get('funding_business') or [])}"
                f"{_list_html(competitor.get('key_insights') or [])}"
            )
        if analysis.get("strategic_insights"):
            sections.append(
                f"<h2>Strategic Insights</h2>{_list_html(analysis['strategic_insights'])}"
            )
    else:
        paragraphs = [p.strip() for p in summary.split("\n\n") if p.strip()]
        sections.extend(
            f"<p>{html.escape(p).replace(chr(10), '<br>')}</p>" for p in paragraphs
        )

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{html.escape(title)}</title>
    <style>
        body {{ font-family: 'Helvetica Neue', Arial, sans-serif; line-height: 1.6; color: #000; }}
        .container {{ max-width: 800px; margin: 0 auto; }}
        .header {{ background: linear-gradient(135deg, #FFE606, #FFD600); padding: 30px; text-align: center; }}
        .content {{ padding: 20px 30px; }}
        .competitors {{ background: #F9FAFB; padding: 12px; border-left: 4px solid #FFE606; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header"><h1>{html.escape(title)}</h1></div>
        <div class="content">
            <div class="competitors"><strong>Competitors:</strong> {html.escape(', '.join(competitors))}</div>
            {''.join(sections)}
        </div>
    </div>
</body>
</html>"""


class EmailDelivery:
    """
    Email delivery service using Resend.

    Without RESEND_API_KEY every send returns an unsuccessful EmailResult.
    """

    DEFAULT_FROM_NAME = "Competitor Lemonade"

    def __init__(self, api_key: Optional[str] = None, from_email: Optional[str] = None):
        settings = get_settings()
        self.api_key = api_key or settings.RESEND_API_KEY
        if not self.api_key:
            logger.warning("RESEND_API_KEY not set - email delivery disabled")

        self.from_email = from_email or settings.FROM_EMAIL

        if self.api_key:
            resend.api_key = self.api_key

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def send_report(
        self,
        to_email: str,
        title: str,
        summary: str,
        competitors: List[str],
    ) -> EmailResult:
        """
        Send a report email.

        Returns:
            EmailResult indicating success/failure
        """
        if not self.api_key:
            return EmailResult(
                success=False,
                error="Email delivery not configured (missing API key)"
            )

        params = {
            "from": f"{self.DEFAULT_FROM_NAME} <{self.from_email}>",
            "to": [to_email],
            "subject": f"{title} - Competitor Analysis Report",
            "html": render_report_html(title, summary, competitors),
        }

        try:
            response = resend.Emails.send(params)
        except Exception as e:
            logger.error(f"Email delivery to {to_email} failed: {e}")
            return EmailResult(success=False, error=str(e))

        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info(f"Email sent to {to_email}: {message_id or 'unknown'}")
        return EmailResult(success=True, message_id=message_id)
