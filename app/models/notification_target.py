from sqlalchemy import Column, String, DateTime, Boolean, Text, JSON, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
from app.core.database import Base


class WebhookEvent(str, enum.Enum):
    NEW_SIGNUP = "new_signup"
    NEW_REFERRER = "new_referrer"
    OFFBOARDED = "offboarded"


class AutomationEvent(str, enum.Enum):
    NEW_SIGNUP = "new_signup"
    NEW_REFERRER = "new_referrer"
    OFFBOARD = "offboard"


DEFAULT_WEBHOOK_EVENTS = [WebhookEvent.NEW_SIGNUP.value, WebhookEvent.OFFBOARDED.value]


class Webhook(Base):
    __tablename__ = "webhooks"
    
    id = Column(String(36), primary_key=True, index=True)
    waitlist_id = Column(String(36), ForeignKey("waitlists.id"), nullable=False, index=True)
    
    url = Column(Text, nullable=False)
    events = Column(JSON, nullable=False, default=list)
    secret = Column(String(128), nullable=False)
    
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )
    
    def __repr__(self) -> str:
        return f"<Webhook(id={self.id}, waitlist_id={self.waitlist_id}, url={self.url})>"
    
    def subscribes_to(self, event: str) -> bool:
        return event in (self.events or [])
    
    def to_dict(self, include_secret: bool = False) -> dict:
        webhook_dict = {
            "id": self.id,
            "waitlist_id": self.waitlist_id,
            "url": self.url,
            "events": self.events or [],
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_secret:
            webhook_dict["secret"] = self.secret
        return webhook_dict


class AutomationHook(Base):
    """REST-hook subscription registered by a third-party automation platform."""
    __tablename__ = "automation_hooks"
    
    id = Column(String(36), primary_key=True, index=True)
    waitlist_id = Column(String(36), ForeignKey("waitlists.id"), nullable=False, index=True)
    
    hook_url = Column(Text, nullable=False)
    event_type = Column(SQLEnum(AutomationEvent), nullable=False, index=True)
    
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )
    
    def __repr__(self) -> str:
        return f"<AutomationHook(id={self.id}, event_type={self.event_type.value}, hook_url={self.hook_url})>"
    
    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "waitlist_id": self.waitlist_id,
            "event": self.event_type.value,
            "hook_url": self.hook_url,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
