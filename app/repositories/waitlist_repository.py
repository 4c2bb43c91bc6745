from typing import Optional, List
from sqlalchemy import case
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from app.models.waitlist import Waitlist
from app.models.signup import Signup
from app.models.notification_target import Webhook, AutomationHook
from app.utils.tokens import generate_api_key, generate_automation_key
import uuid


class WaitlistRepository:
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_by_id(self, waitlist_id: str, for_update: bool = False) -> Optional[Waitlist]:
        query = self.db.query(Waitlist).filter(Waitlist.id == waitlist_id)
        if for_update:
            query = query.with_for_update()
        return query.first()
    
    def get_by_api_key(self, api_key: str) -> Optional[Waitlist]:
        return self.db.query(Waitlist).filter(Waitlist.api_key == api_key).first()
    
    def get_by_automation_key(self, automation_key: str) -> Optional[Waitlist]:
        return self.db.query(Waitlist).filter(Waitlist.automation_key == automation_key).first()
    
    def get_by_owner(self, owner_id: str) -> List[Waitlist]:
        return self.db.query(Waitlist).filter(
            Waitlist.owner_id == owner_id
        ).order_by(Waitlist.created_at.desc()).all()
    
    def count_by_owner(self, owner_id: str) -> int:
        return self.db.query(Waitlist).filter(Waitlist.owner_id == owner_id).count()
    
    def create(
        self,
        owner_id: str,
        name: str,
        description: Optional[str] = None,
        settings: Optional[dict] = None,
        priority_boost: int = 30
    ) -> Waitlist:
        waitlist = Waitlist(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            name=name,
            description=description,
            settings=settings or {},
            api_key=generate_api_key(),
            automation_key=generate_automation_key(),
            total_signups=0,
            priority_boost=priority_boost,
            is_active=True
        )
        
        try:
            self.db.add(waitlist)
            self.db.commit()
            self.db.refresh(waitlist)
            return waitlist
        except IntegrityError:
            self.db.rollback()
            raise
    
    def update(self, waitlist: Waitlist, **kwargs) -> Waitlist:
        for key, value in kwargs.items():
            if hasattr(waitlist, key):
                setattr(waitlist, key, value)
        
        self.db.commit()
        self.db.refresh(waitlist)
        return waitlist
    
    def regenerate_api_key(self, waitlist: Waitlist) -> Waitlist:
        waitlist.api_key = generate_api_key()
        self.db.commit()
        self.db.refresh(waitlist)
        return waitlist
    
    def regenerate_automation_key(self, waitlist: Waitlist) -> Waitlist:
        waitlist.automation_key = generate_automation_key()
        self.db.commit()
        self.db.refresh(waitlist)
        return waitlist
    
    def increment_signups(self, waitlist_id: str) -> None:
        self.db.query(Waitlist).filter(Waitlist.id == waitlist_id).update(
            {Waitlist.total_signups: Waitlist.total_signups + 1},
            synchronize_session=False
        )
    
    def decrement_signups(self, waitlist_id: str) -> None:
        self.db.query(Waitlist).filter(Waitlist.id == waitlist_id).update(
            {Waitlist.total_signups: case(
                (Waitlist.total_signups > 0, Waitlist.total_signups - 1),
                else_=0
            )},
            synchronize_session=False
        )
    
    def delete(self, waitlist: Waitlist) -> None:
        """Remove the waitlist and every child row in a single transaction."""
        waitlist_id = waitlist.id
        try:
            self.db.query(Signup).filter(Signup.waitlist_id == waitlist_id).delete(synchronize_session=False)
            self.db.query(Webhook).filter(Webhook.waitlist_id == waitlist_id).delete(synchronize_session=False)
            self.db.query(AutomationHook).filter(AutomationHook.waitlist_id == waitlist_id).delete(synchronize_session=False)
            self.db.delete(waitlist)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
