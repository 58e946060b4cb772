# vendorwatch/agents/alert.py
"""
Alert gate: decide whether a risk event is worth a notification and send it.

send_risk_alert() never raises. It returns True only when the severity is in
the configured set, a notifier exists and the notifier reported success.
"""
from __future__ import annotations
import logging
from typing import Iterable, Optional

from vendorwatch.config import DEFAULT_ALERT_SEVERITIES
from vendorwatch.models import AlertMessage

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def should_send_alert(severity: str, severities: Optional[Iterable[str]] = None) -> bool:
    allowed = list(severities) if severities else list(DEFAULT_ALERT_SEVERITIES)
    return severity in allowed


def send_risk_alert(event: AlertMessage, settings, notifier) -> bool:
    """
    settings needs an alert_severities attribute (MonitorSettings);
    notifier implements send(AlertMessage) -> bool and may be None.
    """
    if notifier is None:
        logger.debug("No notifier configured; alert for %s not sent", event.vendor_name)
        return False
    severities = getattr(settings, "alert_severities", None)
    if not should_send_alert(event.severity, severities):
        logger.debug("Severity %s not in alert set %s for %s", event.severity, severities, event.vendor_name)
        return False
    try:
        return bool(notifier.send(event))
    except Exception as e:
        logger.exception("Alert delivery failed for %s: %s", event.vendor_name, e)
        return False
