from sqlalchemy import Column, String, DateTime, Integer, Boolean, Text, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class Waitlist(Base):
    """
    A tenant-owned collection of signups, with its settings document and
    the credentials used by widget, admin and automation callers.
    """
    __tablename__ = "waitlists"
    
    id = Column(String(36), primary_key=True, index=True)
    
    owner_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    
    settings = Column(JSON, nullable=False, default=dict)
    
    api_key = Column(String(64), nullable=False, unique=True, index=True)
    automation_key = Column(String(64), nullable=False, unique=True, index=True)
    
    total_signups = Column(
        Integer,
        nullable=False,
        default=0,
        comment="Denormalized signup counter, kept in step by the ledger"
    )
    priority_boost = Column(
        Integer,
        nullable=False,
        default=30,
        comment="Priority added to a referrer for each attributed signup"
    )
    
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )
    
    signups = relationship("Signup", back_populates="waitlist", lazy="dynamic")
    
    def __repr__(self) -> str:
        return f"<Waitlist(id={self.id}, name={self.name}, owner_id={self.owner_id})>"
    
    @property
    def show_leaderboard(self) -> bool:
        return (self.settings or {}).get("show_leaderboard") is not False
    
    @property
    def hides_position(self) -> bool:
        return bool((self.settings or {}).get("hide_position_count"))
    
    def automation_enabled(self) -> bool:
        connectors = (self.settings or {}).get("connectors") or {}
        return bool((connectors.get("automation") or {}).get("enabled"))
    
    def automation_event_enabled(self, event: str) -> bool:
        if not self.automation_enabled():
            return False
        events = ((self.settings or {}).get("connectors") or {}).get("automation", {}).get("events") or {}
        return events.get(event) is not False
    
    def public_settings(self) -> dict:
        settings = self.settings or {}
        return {
            "branding": settings.get("branding") or {},
            "show_leaderboard": self.show_leaderboard,
            "widget": settings.get("widget") or {},
            "social": settings.get("social") or {},
            "questions": settings.get("questions") or [],
        }
    
    def to_dict(self, include_credentials: bool = False) -> dict:
        waitlist_dict = {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "description": self.description,
            "settings": self.settings or {},
            "total_signups": self.total_signups,
            "priority_boost": self.priority_boost,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        
        if include_credentials:
            waitlist_dict["api_key"] = self.api_key
            waitlist_dict["automation_key"] = self.automation_key
        
        return waitlist_dict
