import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, ForbiddenError, BadRequestError
from app.models.notification_target import (
    AutomationEvent,
    AutomationHook,
    Webhook,
    WebhookEvent,
    DEFAULT_WEBHOOK_EVENTS,
)
from app.models.waitlist import Waitlist
from app.repositories.notification_target_repository import NotificationTargetRepository
from app.repositories.signup_repository import SignupRepository
from app.schemas.notification import WebhookCreate, WebhookUpdate, AutomationSubscribe
from app.services.limit_service import LimitService, FEATURE_WEBHOOKS, FEATURE_AUTOMATION
from app.services.notification_service import format_automation_payload
from app.utils.tokens import generate_webhook_secret

logger = logging.getLogger(__name__)

POLLING_SAMPLE_SIZE = 3


class TargetService:
    """Registration of webhooks and automation hooks, plus the automation polling feeds."""

    def __init__(
        self,
        db: Session,
        target_repo: Optional[NotificationTargetRepository] = None,
        signup_repo: Optional[SignupRepository] = None,
        limit_service: Optional[LimitService] = None
    ):
        self.db = db
        self.target_repo = target_repo or NotificationTargetRepository(db)
        self.signup_repo = signup_repo or SignupRepository(db)
        self.limit_service = limit_service or LimitService(db)

    # Webhooks

    def list_webhooks(self, waitlist: Waitlist) -> List[Webhook]:
        return self.target_repo.get_webhooks(waitlist.id)

    def get_webhook(self, waitlist: Waitlist, webhook_id: str) -> Webhook:
        webhook = self.target_repo.get_webhook(webhook_id)

        if not webhook:
            raise NotFoundError("Webhook not found")
        if webhook.waitlist_id != waitlist.id:
            raise ForbiddenError("Webhook does not belong to this waitlist")

        return webhook

    def create_webhook(self, waitlist: Waitlist, data: WebhookCreate) -> Webhook:
        self.limit_service.require_feature(waitlist.owner_id, FEATURE_WEBHOOKS)

        events = self._validate_events(data.events if data.events else list(DEFAULT_WEBHOOK_EVENTS))

        webhook = self.target_repo.create_webhook(
            waitlist_id=waitlist.id,
            url=data.url,
            events=events,
            secret=data.secret or generate_webhook_secret()
        )

        logger.info(f"[WEBHOOK] Endpoint registered | waitlist={waitlist.id} | webhook={webhook.id}")
        return webhook

    def update_webhook(self, waitlist: Waitlist, webhook_id: str, data: WebhookUpdate) -> Webhook:
        webhook = self.get_webhook(waitlist, webhook_id)

        changes = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None}
        if "events" in changes:
            if not changes["events"]:
                raise BadRequestError("At least one event is required")
            changes["events"] = self._validate_events(changes["events"])
        if changes.get("is_active") is True and not webhook.is_active:
            self.limit_service.require_feature(waitlist.owner_id, FEATURE_WEBHOOKS)

        if not changes:
            return webhook

        webhook = self.target_repo.update_webhook(webhook, **changes)
        logger.info(
            f"[WEBHOOK] Endpoint updated | waitlist={waitlist.id} | webhook={webhook.id} | "
            f"fields={','.join(sorted(changes))}"
        )
        return webhook

    def delete_webhook(self, waitlist: Waitlist, webhook_id: str) -> None:
        webhook = self.get_webhook(waitlist, webhook_id)
        self.target_repo.delete_webhook(webhook)
        logger.info(f"[WEBHOOK] Endpoint deleted | waitlist={waitlist.id} | webhook={webhook_id}")

    @staticmethod
    def _validate_events(events: List[str]) -> List[str]:
        valid_events = {event.value for event in WebhookEvent}
        invalid = [event for event in events if event not in valid_events]
        if invalid:
            raise BadRequestError(
                f"Invalid events: {', '.join(invalid)}. Must be one of: {', '.join(sorted(valid_events))}"
            )
        return list(dict.fromkeys(events))

    # Automation hooks

    def require_automation(self, waitlist: Waitlist) -> None:
        if not waitlist.automation_enabled():
            raise ForbiddenError("Automation integration is not enabled for this waitlist")
        self.limit_service.require_feature(waitlist.owner_id, FEATURE_AUTOMATION)

    def list_automation_hooks(self, waitlist: Waitlist) -> List[AutomationHook]:
        return self.target_repo.get_automation_hooks(waitlist.id)

    def get_automation_hook(self, waitlist: Waitlist, hook_id: str) -> AutomationHook:
        hook = self.target_repo.get_automation_hook(hook_id)

        if not hook:
            raise NotFoundError("Hook not found")
        if hook.waitlist_id != waitlist.id:
            raise ForbiddenError("Hook does not belong to this waitlist")

        return hook

    def subscribe(self, waitlist: Waitlist, data: AutomationSubscribe) -> AutomationHook:
        if not data.hookUrl or not data.event:
            raise BadRequestError("hookUrl and event are required")

        try:
            event = AutomationEvent(data.event)
        except ValueError:
            raise BadRequestError(
                f"Invalid event. Must be one of: {', '.join(e.value for e in AutomationEvent)}"
            )

        hook = self.target_repo.create_automation_hook(waitlist.id, data.hookUrl, event)
        logger.info(f"[AUTOMATION] Hook subscribed | waitlist={waitlist.id} | hook={hook.id} | event={event.value}")
        return hook

    def set_automation_hook_active(self, waitlist: Waitlist, hook_id: str, is_active: bool) -> AutomationHook:
        hook = self.get_automation_hook(waitlist, hook_id)
        hook = self.target_repo.set_automation_hook_active(hook, is_active)
        logger.info(f"[AUTOMATION] Hook {'resumed' if is_active else 'paused'} | waitlist={waitlist.id} | hook={hook_id}")
        return hook

    def unsubscribe(self, waitlist: Waitlist, hook_id: str) -> None:
        hook = self.get_automation_hook(waitlist, hook_id)
        self.target_repo.delete_automation_hook(hook)
        logger.info(f"[AUTOMATION] Hook unsubscribed | waitlist={waitlist.id} | hook={hook_id}")

    # Polling feeds return sample records so automation platforms can map fields

    def recent_signups(self, waitlist: Waitlist) -> List[Dict[str, Any]]:
        signups = self.signup_repo.list_by_waitlist(
            waitlist.id, limit=POLLING_SAMPLE_SIZE, sort_by="created_at", order="desc"
        )
        return [format_automation_payload(signup, waitlist) for signup in signups]

    def top_referrers(self, waitlist: Waitlist) -> List[Dict[str, Any]]:
        signups = self.signup_repo.list_referrers(waitlist.id, POLLING_SAMPLE_SIZE)
        return [format_automation_payload(signup, waitlist) for signup in signups]

    def recently_offboarded(self, waitlist: Waitlist) -> List[Dict[str, Any]]:
        signups = self.signup_repo.list_recently_admitted(waitlist.id, POLLING_SAMPLE_SIZE)
        return [format_automation_payload(signup, waitlist) for signup in signups]
