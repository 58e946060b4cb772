# vendorwatch/services/notifier.py
"""
SMTP email notifier (implements the Notifier interface).

EmailNotifier.send(AlertMessage) -> bool builds a multipart/alternative
message (plain + HTML) and delivers it over SMTP_SSL. Transport errors
propagate to the caller; agents.alert turns them into False.
"""
from __future__ import annotations
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from vendorwatch.config import cfg
from vendorwatch.models import AlertMessage

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

SMTP_TIMEOUT = 30


def build_subject(alert: AlertMessage) -> str:
    return f"[VendorWatch] {alert.severity.upper()} risk: {alert.vendor_name}"


def render_text(alert: AlertMessage) -> str:
    return (
        f"Vendor Risk Alert\n\n"
        f"Vendor: {alert.vendor_name}\n"
        f"Website: {alert.vendor_website}\n"
        f"Severity: {alert.severity}\n"
        f"Type: {alert.type}\n\n"
        f"Summary\n{alert.summary}\n\n"
        f"Recommended Actions\n{alert.recommended_action}\n"
    )


def _nl2br(s: str) -> str:
    return html.escape(s or "").replace("\n", "<br />")


def render_html(alert: AlertMessage) -> str:
    site = html.escape(alert.vendor_website)
    return f"""
<h2>Vendor Risk Alert</h2>
<p><strong>Vendor:</strong> {html.escape(alert.vendor_name)}</p>
<p><strong>Website:</strong> <a href="{site}">{site}</a></p>
<p><strong>Severity:</strong> {html.escape(alert.severity)}</p>
<p><strong>Type:</strong> {html.escape(alert.type)}</p>
<hr />
<h3>Summary</h3>
<div style="margin: 0 0 1rem 0; line-height: 1.6;">{_nl2br(alert.summary)}</div>
<h3>Recommended Actions</h3>
<div style="margin: 0; line-height: 1.6;">{_nl2br(alert.recommended_action)}</div>
"""


class EmailNotifier:
    def __init__(self,
                 to_addr: Optional[str] = None,
                 from_addr: Optional[str] = None,
                 host: Optional[str] = None,
                 port: Optional[int] = None,
                 user: Optional[str] = None,
                 password: Optional[str] = None):
        self.to_addr = to_addr or cfg.ALERT_EMAIL
        self.from_addr = from_addr or cfg.ALERT_FROM_EMAIL
        self.host = host or cfg.SMTP_HOST
        self.port = port or cfg.SMTP_PORT
        self.user = user or cfg.SMTP_USER
        self.password = password or cfg.SMTP_PASSWORD

    @property
    def configured(self) -> bool:
        return bool(self.to_addr and self.host)

    @classmethod
    def from_config(cls) -> Optional["EmailNotifier"]:
        """None when ALERT_EMAIL or SMTP_HOST is missing."""
        notifier = cls()
        return notifier if notifier.configured else None

    def build_message(self, alert: AlertMessage) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = build_subject(alert)
        msg["From"] = self.from_addr
        msg["To"] = self.to_addr
        msg.attach(MIMEText(render_text(alert), "plain"))
        msg.attach(MIMEText(render_html(alert), "html"))
        return msg

    def send(self, event: AlertMessage) -> bool:
        if not self.configured:
            logger.debug("Email notifier not configured; skipping alert for %s", event.vendor_name)
            return False
        msg = self.build_message(event)
        with smtplib.SMTP_SSL(self.host, self.port, timeout=SMTP_TIMEOUT) as server:
            if self.user and self.password:
                server.login(self.user, self.password)
            server.send_message(msg)
        logger.info("[alert] email sent for %s (%s)", event.vendor_name, event.severity)
        return True
