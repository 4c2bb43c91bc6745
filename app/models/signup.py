from sqlalchemy import (
    Column, String, DateTime, Integer, Enum as SQLEnum, ForeignKey, JSON, UniqueConstraint, Index
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from app.core.database import Base


class SignupStatus(str, enum.Enum):
    WAITING = "waiting"
    VERIFIED = "verified"
    ADMITTED = "admitted"


class Signup(Base):
    __tablename__ = "signups"
    __table_args__ = (
        UniqueConstraint("waitlist_id", "email", name="uq_signups_waitlist_email"),
        Index("ix_signups_waitlist_rank", "waitlist_id", "status", "priority", "position"),
    )
    
    id = Column(String(36), primary_key=True, index=True)
    
    waitlist_id = Column(String(36), ForeignKey("waitlists.id"), nullable=False, index=True)
    
    email = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    
    referral_code = Column(String(32), nullable=False, unique=True, index=True)
    referred_by = Column(
        String(32),
        nullable=True,
        index=True,
        comment="Referral code of the signup that referred this one"
    )
    referral_count = Column(Integer, nullable=False, default=0)
    
    priority = Column(
        Integer,
        nullable=False,
        default=0,
        comment="Rank score (higher = closer to the front)"
    )
    position = Column(
        Integer,
        nullable=False,
        comment="Creation order within the waitlist, immutable, used as tie-break"
    )
    
    status = Column(
        SQLEnum(SignupStatus),
        nullable=False,
        default=SignupStatus.WAITING,
        index=True
    )
    
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    
    verified_at = Column(DateTime(timezone=True), nullable=True)
    admitted_at = Column(DateTime(timezone=True), nullable=True)
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
    
    waitlist = relationship("Waitlist", back_populates="signups")
    
    def __repr__(self) -> str:
        return f"<Signup(id={self.id}, waitlist_id={self.waitlist_id}, position={self.position}, priority={self.priority})>"
    
    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "waitlist_id": self.waitlist_id,
            "email": self.email,
            "name": self.name,
            "referral_code": self.referral_code,
            "referred_by": self.referred_by,
            "referral_count": self.referral_count,
            "priority": self.priority,
            "position": self.position,
            "status": self.status.value,
            "metadata": self.metadata_ or {},
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "admitted_at": self.admitted_at.isoformat() if self.admitted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
