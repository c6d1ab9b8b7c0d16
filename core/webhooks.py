"""
Outbound event notifications for automation tooling.

Events are POSTed as JSON to WEBHOOK_URL after the response has been sent,
through FastAPI background tasks. Delivery is best effort: failures are
logged and never reach the caller.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from fastapi import BackgroundTasks
from fastapi.encoders import jsonable_encoder

import models
from core import config

logger = logging.getLogger(__name__)

USER_CREATED = "user.created"
LEAD_CREATED = "lead.created"
DEMO_CREATED = "demo.created"
DEMO_UPDATED = "demo.updated"
DEMO_ASSIGNED = "demo.assigned"
DEMO_STATUS_CHANGED = "demo.status.changed"
DEMO_DELETED = "demo.deleted"


def build_payload(event: str, data: Any, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {
        "event": event,
        "data": jsonable_encoder(data),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if metadata:
        payload["metadata"] = metadata
    return payload


def user_metadata(user: Optional[models.User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"user_id": str(user.id), "user_role": models.UserRole(user.role).value, "user_email": user.email}


def send_webhook(event: str, data: Any, metadata: Optional[Dict[str, Any]] = None) -> bool:
    """
    Posts one event. Returns True when the receiver answered with a 2xx.
    """
    url = config.WEBHOOK_URL
    if not url:
        logger.debug(f"Webhook not sent, WEBHOOK_URL is not configured. Event: {event}")
        return False

    headers = {"Content-Type": "application/json"}
    if config.WEBHOOK_TOKEN:
        headers["Authorization"] = f"Bearer {config.WEBHOOK_TOKEN}"

    try:
        with httpx.Client(timeout=config.WEBHOOK_TIMEOUT_SECONDS) as client:
            response = client.post(url, headers=headers, json=build_payload(event, data, metadata))
    except httpx.HTTPError as e:
        logger.error(f"Error sending webhook '{event}': {e}")
        return False

    if response.is_success:
        logger.info(f"Webhook '{event}' delivered ({response.status_code})")
        return True
    logger.error(f"Webhook '{event}' rejected: {response.status_code} {response.text[:200]}")
    return False


def queue_webhook(
    background_tasks: BackgroundTasks,
    event: str,
    data: Any,
    user: Optional[models.User] = None,
) -> None:
    """Schedules send_webhook to run after the response is sent."""
    # Encode now: ORM instances may be expired once the session closes.
    background_tasks.add_task(send_webhook, event, jsonable_encoder(data), user_metadata(user))
