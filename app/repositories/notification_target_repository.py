from typing import Optional, List
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from app.models.notification_target import Webhook, AutomationHook, AutomationEvent
import uuid


class NotificationTargetRepository:
    
    def __init__(self, db: Session):
        self.db = db
    
    # Webhooks
    
    def get_webhook(self, webhook_id: str) -> Optional[Webhook]:
        return self.db.query(Webhook).filter(Webhook.id == webhook_id).first()
    
    def get_webhooks(self, waitlist_id: str) -> List[Webhook]:
        return self.db.query(Webhook).filter(
            Webhook.waitlist_id == waitlist_id
        ).order_by(Webhook.created_at).all()
    
    def get_active_webhooks_for_event(self, waitlist_id: str, event: str) -> List[Webhook]:
        webhooks = self.db.query(Webhook).filter(
            Webhook.waitlist_id == waitlist_id,
            Webhook.is_active.is_(True)
        ).all()
        # events is a JSON list; filtering in Python keeps this portable across engines
        return [webhook for webhook in webhooks if webhook.subscribes_to(event)]
    
    def create_webhook(self, waitlist_id: str, url: str, events: List[str], secret: str) -> Webhook:
        webhook = Webhook(
            id=str(uuid.uuid4()),
            waitlist_id=waitlist_id,
            url=url,
            events=events,
            secret=secret,
            is_active=True
        )
        
        try:
            self.db.add(webhook)
            self.db.commit()
            self.db.refresh(webhook)
            return webhook
        except IntegrityError:
            self.db.rollback()
            raise
    
    def update_webhook(self, webhook: Webhook, **kwargs) -> Webhook:
        for key, value in kwargs.items():
            if hasattr(webhook, key):
                setattr(webhook, key, value)
        
        self.db.commit()
        self.db.refresh(webhook)
        return webhook
    
    def delete_webhook(self, webhook: Webhook) -> None:
        self.db.delete(webhook)
        self.db.commit()
    
    # Automation hooks
    
    def get_automation_hook(self, hook_id: str) -> Optional[AutomationHook]:
        return self.db.query(AutomationHook).filter(AutomationHook.id == hook_id).first()
    
    def get_automation_hooks(self, waitlist_id: str) -> List[AutomationHook]:
        return self.db.query(AutomationHook).filter(
            AutomationHook.waitlist_id == waitlist_id
        ).order_by(AutomationHook.created_at).all()
    
    def get_active_automation_hooks_for_event(
        self,
        waitlist_id: str,
        event: AutomationEvent
    ) -> List[AutomationHook]:
        return self.db.query(AutomationHook).filter(
            AutomationHook.waitlist_id == waitlist_id,
            AutomationHook.event_type == event,
            AutomationHook.is_active.is_(True)
        ).all()
    
    def create_automation_hook(
        self,
        waitlist_id: str,
        hook_url: str,
        event: AutomationEvent
    ) -> AutomationHook:
        hook = AutomationHook(
            id=str(uuid.uuid4()),
            waitlist_id=waitlist_id,
            hook_url=hook_url,
            event_type=event,
            is_active=True
        )
        
        try:
            self.db.add(hook)
            self.db.commit()
            self.db.refresh(hook)
            return hook
        except IntegrityError:
            self.db.rollback()
            raise
    
    def set_automation_hook_active(self, hook: AutomationHook, is_active: bool) -> AutomationHook:
        hook.is_active = is_active
        self.db.commit()
        self.db.refresh(hook)
        return hook
    
    def delete_automation_hook(self, hook: AutomationHook) -> None:
        self.db.delete(hook)
        self.db.commit()
