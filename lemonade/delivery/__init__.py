"""Report delivery."""

from .email import EmailDelivery, EmailResult, render_report_html

__all__ = ["EmailDelivery", "EmailResult", "render_report_html"]
