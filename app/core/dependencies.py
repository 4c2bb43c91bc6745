"""
FastAPI dependency providers for services and for resolving the waitlist
a request acts on.

All providers share the request's session through get_db, which FastAPI
caches per request.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_principal, get_automation_key_waitlist
from app.models.waitlist import Waitlist
from app.services.limit_service import LimitService
from app.services.notification_service import NotificationDispatcher
from app.services.ranking_service import RankingService
from app.services.signup_service import SignupService
from app.services.target_service import TargetService
from app.services.waitlist_service import WaitlistService


def get_limit_service(db: Session = Depends(get_db)) -> LimitService:
    return LimitService(db)


def get_waitlist_service(db: Session = Depends(get_db)) -> WaitlistService:
    return WaitlistService(db)


def get_signup_service(db: Session = Depends(get_db)) -> SignupService:
    return SignupService(db)


def get_ranking_service(db: Session = Depends(get_db)) -> RankingService:
    return RankingService(db)


def get_target_service(db: Session = Depends(get_db)) -> TargetService:
    return TargetService(db)


def get_dispatcher(db: Session = Depends(get_db)) -> NotificationDispatcher:
    return NotificationDispatcher(db)


def get_owned_waitlist(
    waitlist_id: str,
    principal_id: str = Depends(get_current_principal),
    waitlist_service: WaitlistService = Depends(get_waitlist_service)
) -> Waitlist:
    """Path waitlist, after checking the bearer principal owns it."""
    return waitlist_service.get_owned_waitlist(waitlist_id, principal_id)


def get_automation_waitlist(
    waitlist: Waitlist = Depends(get_automation_key_waitlist),
    target_service: TargetService = Depends(get_target_service)
) -> Waitlist:
    target_service.require_automation(waitlist)
    return waitlist
