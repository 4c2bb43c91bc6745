from sqlalchemy import Column, String, DateTime, Integer, Boolean, JSON, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from app.core.database import Base


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"


class SubscriptionPlan(Base):
    """
    Billing snapshot written by the payment collaborator.
    Null limits mean unlimited.
    """
    __tablename__ = "subscription_plans"
    
    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    
    max_waitlists = Column(Integer, nullable=True)
    max_signups_per_month = Column(Integer, nullable=True)
    max_team_members = Column(Integer, nullable=True)
    features = Column(JSON, nullable=False, default=list)
    
    is_active = Column(Boolean, nullable=False, default=True)
    
    def __repr__(self) -> str:
        return f"<SubscriptionPlan(id={self.id}, name={self.name})>"


class Subscription(Base):
    __tablename__ = "subscriptions"
    
    id = Column(String(36), primary_key=True, index=True)
    owner_id = Column(String(255), nullable=False, index=True)
    plan_id = Column(String(36), ForeignKey("subscription_plans.id"), nullable=False)
    
    status = Column(
        SQLEnum(SubscriptionStatus),
        nullable=False,
        default=SubscriptionStatus.ACTIVE,
        index=True
    )
    
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )
    
    plan = relationship("SubscriptionPlan")
    
    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, owner_id={self.owner_id}, status={self.status.value})>"
