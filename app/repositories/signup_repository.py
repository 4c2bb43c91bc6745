from typing import Optional, List, Dict
from datetime import datetime
from sqlalchemy import func, or_, and_
from sqlalchemy.orm import Session
from app.models.signup import Signup, SignupStatus
import uuid

VALID_SORT_FIELDS = {
    "position": Signup.position,
    "created_at": Signup.created_at,
    "referral_count": Signup.referral_count,
    "priority": Signup.priority,
}


def normalize_email(email: str) -> str:
    return email.strip().lower()


class SignupRepository:
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_by_id(self, signup_id: str) -> Optional[Signup]:
        return self.db.query(Signup).filter(Signup.id == signup_id).first()
    
    def get_by_email(self, waitlist_id: str, email: str) -> Optional[Signup]:
        return self.db.query(Signup).filter(
            Signup.waitlist_id == waitlist_id,
            Signup.email == normalize_email(email)
        ).first()
    
    def get_by_referral_code(self, referral_code: str) -> Optional[Signup]:
        return self.db.query(Signup).filter(Signup.referral_code == referral_code).first()
    
    def referral_code_exists(self, referral_code: str) -> bool:
        return self.db.query(Signup.id).filter(Signup.referral_code == referral_code).first() is not None
    
    def list_by_waitlist(
        self,
        waitlist_id: str,
        limit: int = 100,
        offset: int = 0,
        status: Optional[SignupStatus] = None,
        sort_by: str = "position",
        order: str = "asc"
    ) -> List[Signup]:
        query = self.db.query(Signup).filter(Signup.waitlist_id == waitlist_id)
        
        if status:
            query = query.filter(Signup.status == status)
        
        # Unknown sort fields fall back to join order
        sort_column = VALID_SORT_FIELDS.get(sort_by, Signup.position)
        if (order or "").lower() == "desc":
            query = query.order_by(sort_column.desc(), Signup.position.desc())
        else:
            query = query.order_by(sort_column.asc(), Signup.position.asc())
        
        return query.offset(offset).limit(limit).all()
    
    def list_referrers(self, waitlist_id: str, limit: int) -> List[Signup]:
        return self.db.query(Signup).filter(
            Signup.waitlist_id == waitlist_id,
            Signup.referral_count > 0
        ).order_by(Signup.referral_count.desc(), Signup.position).limit(limit).all()
    
    def list_recently_admitted(self, waitlist_id: str, limit: int) -> List[Signup]:
        return self.db.query(Signup).filter(
            Signup.waitlist_id == waitlist_id,
            Signup.status == SignupStatus.ADMITTED
        ).order_by(Signup.admitted_at.desc()).limit(limit).all()
    
    def count(self, waitlist_id: str, status: Optional[SignupStatus] = None) -> int:
        query = self.db.query(Signup).filter(Signup.waitlist_id == waitlist_id)
        if status:
            query = query.filter(Signup.status == status)
        return query.count()
    
    def count_created_since(self, waitlist_id: str, since: datetime) -> int:
        return self.db.query(Signup).filter(
            Signup.waitlist_id == waitlist_id,
            Signup.created_at >= since
        ).count()
    
    def get_next_position(self, waitlist_id: str) -> int:
        return self.count(waitlist_id) + 1
    
    def create(
        self,
        waitlist_id: str,
        email: str,
        referral_code: str,
        position: int,
        referred_by: Optional[str] = None,
        name: Optional[str] = None,
        metadata: Optional[dict] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Signup:
        """Stage a new signup; the caller owns the transaction."""
        signup = Signup(
            id=str(uuid.uuid4()),
            waitlist_id=waitlist_id,
            email=normalize_email(email),
            name=name,
            referral_code=referral_code,
            referred_by=referred_by,
            referral_count=0,
            priority=0,
            position=position,
            status=SignupStatus.WAITING,
            metadata_=metadata or {},
            ip_address=ip_address,
            user_agent=user_agent
        )
        self.db.add(signup)
        self.db.flush()
        return signup
    
    def increment_referral(self, signup_id: str, priority_boost: int) -> int:
        return self.db.query(Signup).filter(Signup.id == signup_id).update(
            {
                Signup.referral_count: Signup.referral_count + 1,
                Signup.priority: Signup.priority + priority_boost,
            },
            synchronize_session=False
        )
    
    def add_priority(self, signup_id: str, amount: int) -> int:
        return self.db.query(Signup).filter(Signup.id == signup_id).update(
            {Signup.priority: Signup.priority + amount},
            synchronize_session=False
        )
    
    def mark_verified(self, signup_id: str, verified_at: datetime) -> int:
        """Compare-and-set waiting -> verified; returns 0 when the signup moved on already."""
        return self.db.query(Signup).filter(
            Signup.id == signup_id,
            Signup.status == SignupStatus.WAITING
        ).update(
            {Signup.status: SignupStatus.VERIFIED, Signup.verified_at: verified_at},
            synchronize_session=False
        )
    
    def mark_admitted(self, signup_id: str, admitted_at: datetime) -> int:
        """Compare-and-set to admitted; returns 0 when it was admitted already."""
        return self.db.query(Signup).filter(
            Signup.id == signup_id,
            Signup.status != SignupStatus.ADMITTED
        ).update(
            {Signup.status: SignupStatus.ADMITTED, Signup.admitted_at: admitted_at},
            synchronize_session=False
        )
    
    def delete(self, signup: Signup) -> None:
        self.db.delete(signup)
        self.db.flush()
    
    def count_ahead(self, waitlist_id: str, priority: int, position: int) -> int:
        return self.db.query(Signup).filter(
            Signup.waitlist_id == waitlist_id,
            Signup.status != SignupStatus.ADMITTED,
            or_(
                Signup.priority > priority,
                and_(Signup.priority == priority, Signup.position < position)
            )
        ).count()
    
    def get_leaderboard(self, waitlist_id: str, limit: int) -> List[Signup]:
        return self.db.query(Signup).filter(
            Signup.waitlist_id == waitlist_id,
            Signup.status != SignupStatus.ADMITTED
        ).order_by(
            Signup.priority.desc(),
            Signup.referral_count.desc(),
            Signup.position.asc()
        ).limit(limit).all()
    
    def status_counts(self, waitlist_id: str) -> Dict[SignupStatus, int]:
        rows = self.db.query(Signup.status, func.count(Signup.id)).filter(
            Signup.waitlist_id == waitlist_id
        ).group_by(Signup.status).all()
        return {status: count for status, count in rows}
    
    def total_referrals(self, waitlist_id: str) -> int:
        total = self.db.query(func.sum(Signup.referral_count)).filter(
            Signup.waitlist_id == waitlist_id
        ).scalar()
        return int(total or 0)
