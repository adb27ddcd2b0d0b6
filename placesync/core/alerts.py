"""Webhook alerts for fatal errors."""

import logging
from datetime import datetime, timezone
from typing import Optional

import requests

from placesync.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10


def send_alert(exc: BaseException, context: str, settings: Optional[Settings] = None) -> bool:
    """POST a critical alert to the configured webhook. Returns True when one was delivered."""
    settings = settings or get_settings()
    if not settings.alert_enabled:
        return False
    if not settings.alert_webhook_url:
        logger.warning("ALERT_ENABLED is set but ALERT_WEBHOOK_URL is missing; skipping alert for %s", context)
        return False

    payload = {
        "level": "critical",
        "context": context,
        "error_type": type(exc).__name__,
        "message": str(exc),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    try:
        response = requests.post(settings.alert_webhook_url, json=payload, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc_post:
        logger.error("Failed to send alert for %s: %s", context, exc_post)
        return False

    logger.info("Webhook alert sent for %s", context)
    return True
