"""
Notification dispatcher.

Fans lifecycle events out to a waitlist's active webhooks and automation
hooks. Targets are resolved and payloads serialized inside the request,
then delivery runs as a background task after the response is sent:

- every target is posted to independently, in parallel, with its own timeout
- a failure on one target is logged and recorded, never raised
- there is no retry and no queue, so delivery is at-most-once
"""
import enum
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import requests
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.notification_target import AutomationEvent, AutomationHook, Webhook, WebhookEvent
from app.models.signup import Signup, SignupStatus
from app.models.waitlist import Waitlist
from app.repositories.notification_target_repository import NotificationTargetRepository
from app.schemas.notification import DeliveryResult
from app.utils.signature import canonical_json, generate_signature
from app.utils.tokens import build_referral_link

logger = logging.getLogger(__name__)

WEBHOOK_USER_AGENT = "Waitlist-Webhooks/1.0"
AUTOMATION_USER_AGENT = "Waitlist-Automation/1.0"

CHANNEL_WEBHOOK = "webhook"
CHANNEL_AUTOMATION = "automation"


class LifecycleEvent(str, enum.Enum):
    SIGNUP_CREATED = "signup_created"
    REFERRAL_ATTRIBUTED = "referral_attributed"
    SIGNUP_ADMITTED = "signup_admitted"


WEBHOOK_EVENT_NAMES = {
    LifecycleEvent.SIGNUP_CREATED: WebhookEvent.NEW_SIGNUP,
    LifecycleEvent.REFERRAL_ATTRIBUTED: WebhookEvent.NEW_REFERRER,
    LifecycleEvent.SIGNUP_ADMITTED: WebhookEvent.OFFBOARDED,
}

AUTOMATION_EVENT_NAMES = {
    LifecycleEvent.SIGNUP_CREATED: AutomationEvent.NEW_SIGNUP,
    LifecycleEvent.REFERRAL_ATTRIBUTED: AutomationEvent.NEW_REFERRER,
    LifecycleEvent.SIGNUP_ADMITTED: AutomationEvent.OFFBOARD,
}


@dataclass
class Delivery:
    """One fully serialized outbound POST, safe to send after the session closes."""
    target_id: str
    channel: str
    event: str
    url: str
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: Union[float, Tuple[float, float]] = 30.0


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


def format_automation_payload(signup: Signup, waitlist: Waitlist) -> Dict[str, Any]:
    """Flattened signup record in the shape automation platforms poll and receive."""
    metadata = signup.metadata_ or {}
    admitted = signup.status == SignupStatus.ADMITTED

    return {
        "id": signup.id,
        "uuid": signup.id,
        "waitlist_id": waitlist.id,
        "waitlist_name": waitlist.name,
        "email": signup.email,
        "first_name": metadata.get("first_name"),
        "last_name": metadata.get("last_name"),
        "phone": metadata.get("phone"),
        "position": signup.position,
        "priority": signup.priority,
        "referral_code": signup.referral_code,
        "referral_token": signup.referral_code,
        "referral_link": build_referral_link(settings.PUBLIC_BASE_URL, waitlist.id, signup.referral_code),
        "referral_count": signup.referral_count or 0,
        "amount_referred": signup.referral_count or 0,
        "referred_by": signup.referred_by,
        "referred_by_signup_token": signup.referred_by,
        "status": signup.status.value,
        "verified": signup.status == SignupStatus.VERIFIED or signup.verified_at is not None,
        "created_at": _isoformat(signup.created_at),
        "verified_at": _isoformat(signup.verified_at),
        "admitted_at": _isoformat(signup.admitted_at),
        "removed_date": _isoformat(signup.admitted_at) if admitted else None,
        "removed_priority": signup.priority if admitted else None,
        "metadata": metadata,
        "answers": metadata.get("answers") or [],
    }


def webhook_data(event: WebhookEvent, signup: Signup) -> Dict[str, Any]:
    if event == WebhookEvent.OFFBOARDED:
        return {"signup_id": signup.id, "email": signup.email}
    return signup.to_dict()


def build_webhook_delivery(
    webhook: Webhook,
    event: WebhookEvent,
    data: Dict[str, Any],
    timestamp: Optional[int] = None
) -> Delivery:
    """
    Envelope {event, timestamp, data}; the signature covers
    "<timestamp>.<json(data)>" with the webhook's secret.
    """
    timestamp = timestamp if timestamp is not None else int(time.time() * 1000)

    return Delivery(
        target_id=webhook.id,
        channel=CHANNEL_WEBHOOK,
        event=event.value,
        url=webhook.url,
        body={"event": event.value, "timestamp": timestamp, "data": data},
        headers={
            "Content-Type": "application/json",
            "X-Webhook-Signature": generate_signature(webhook.secret, timestamp, data),
            "X-Webhook-Timestamp": str(timestamp),
            "X-Webhook-Event": event.value,
            "User-Agent": WEBHOOK_USER_AGENT,
        },
        timeout=settings.WEBHOOK_TIMEOUT_SECONDS
    )


def build_automation_delivery(hook: AutomationHook, payload: Dict[str, Any]) -> Delivery:
    return Delivery(
        target_id=hook.id,
        channel=CHANNEL_AUTOMATION,
        event=hook.event_type.value,
        url=hook.hook_url,
        body=payload,
        headers={
            "Content-Type": "application/json",
            "User-Agent": AUTOMATION_USER_AGENT,
        },
        timeout=(settings.AUTOMATION_CONNECT_TIMEOUT_SECONDS, settings.AUTOMATION_READ_TIMEOUT_SECONDS)
    )


class NotificationDispatcher:

    def __init__(
        self,
        db: Session,
        target_repo: Optional[NotificationTargetRepository] = None,
        max_workers: Optional[int] = None
    ):
        self.db = db
        self.target_repo = target_repo or NotificationTargetRepository(db)
        self.max_workers = max_workers or settings.NOTIFY_MAX_WORKERS

    def prepare(self, waitlist: Waitlist, event: LifecycleEvent, signup: Signup) -> List[Delivery]:
        deliveries: List[Delivery] = []

        webhook_event = WEBHOOK_EVENT_NAMES[event]
        webhooks = self.target_repo.get_active_webhooks_for_event(waitlist.id, webhook_event.value)
        if webhooks:
            data = webhook_data(webhook_event, signup)
            timestamp = int(time.time() * 1000)
            deliveries.extend(build_webhook_delivery(webhook, webhook_event, data, timestamp) for webhook in webhooks)

        automation_event = AUTOMATION_EVENT_NAMES[event]
        if waitlist.automation_event_enabled(automation_event.value):
            hooks = self.target_repo.get_active_automation_hooks_for_event(waitlist.id, automation_event)
            if hooks:
                payload = format_automation_payload(signup, waitlist)
                deliveries.extend(build_automation_delivery(hook, payload) for hook in hooks)

        return deliveries

    def deliver_all(self, deliveries: List[Delivery]) -> List[DeliveryResult]:
        if not deliveries:
            return []

        workers = min(self.max_workers, len(deliveries))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notify") as executor:
            return list(executor.map(self._send, deliveries))

    def _send(self, delivery: Delivery) -> DeliveryResult:
        tag = "[WEBHOOK]" if delivery.channel == CHANNEL_WEBHOOK else "[AUTOMATION]"
        start_time = time.time()

        try:
            response = requests.post(
                delivery.url,
                data=canonical_json(delivery.body),
                headers=delivery.headers,
                timeout=delivery.timeout,
            )
            duration_ms = int((time.time() - start_time) * 1000)

            if 200 <= response.status_code < 300:
                logger.info(
                    f"{tag} Delivered | target={delivery.target_id} | event={delivery.event} | "
                    f"status={response.status_code} | duration={duration_ms}ms"
                )
                return DeliveryResult(
                    target_id=delivery.target_id,
                    channel=delivery.channel,
                    event=delivery.event,
                    success=True,
                    status_code=response.status_code
                )

            logger.warning(
                f"{tag} Failed | target={delivery.target_id} | event={delivery.event} | "
                f"status={response.status_code}"
            )
            return DeliveryResult(
                target_id=delivery.target_id,
                channel=delivery.channel,
                event=delivery.event,
                success=False,
                status_code=response.status_code,
                error=f"HTTP {response.status_code}"
            )

        except requests.Timeout:
            logger.warning(f"{tag} Timeout | target={delivery.target_id} | event={delivery.event}")
            error = "Request timed out"
        except requests.RequestException as e:
            logger.error(f"{tag} Error | target={delivery.target_id} | event={delivery.event} | error={e}")
            error = str(e)[:500]
        except Exception as e:
            logger.exception(f"{tag} Unexpected error | target={delivery.target_id} | event={delivery.event}")
            error = str(e)[:500]

        return DeliveryResult(
            target_id=delivery.target_id,
            channel=delivery.channel,
            event=delivery.event,
            success=False,
            error=error
        )

    def notify(
        self,
        background_tasks: BackgroundTasks,
        waitlist: Waitlist,
        event: LifecycleEvent,
        signup: Signup
    ) -> int:
        """
        Resolve targets now and schedule delivery after the response.
        Returns how many deliveries were scheduled.
        """
        try:
            deliveries = self.prepare(waitlist, event, signup)
        except Exception:
            logger.exception(f"[NOTIFY] Could not resolve targets | waitlist={waitlist.id} | event={event.value}")
            return 0

        if deliveries:
            background_tasks.add_task(self.deliver_all, deliveries)
            logger.info(
                f"[NOTIFY] Scheduled {len(deliveries)} deliveries | waitlist={waitlist.id} | event={event.value}"
            )
        return len(deliveries)
