from typing import Optional
from sqlalchemy.orm import Session, joinedload
from app.models.subscription import Subscription, SubscriptionStatus


class SubscriptionRepository:
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_active_for_owner(self, owner_id: str) -> Optional[Subscription]:
        return self.db.query(Subscription).filter(
            Subscription.owner_id == owner_id,
            Subscription.status == SubscriptionStatus.ACTIVE
        ).options(
            joinedload(Subscription.plan)
        ).order_by(Subscription.created_at.desc()).first()
