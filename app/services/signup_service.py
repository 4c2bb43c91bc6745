import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.exceptions import (
    NotFoundError,
    BadRequestError,
    ConflictError,
    AlreadyRegisteredError,
)
from app.models.signup import Signup, SignupStatus
from app.models.waitlist import Waitlist
from app.repositories.signup_repository import SignupRepository
from app.repositories.waitlist_repository import WaitlistRepository
from app.schemas.signup import SignupCreate
from app.schemas.subscription import LimitType
from app.services.limit_service import LimitService
from app.utils.tokens import generate_referral_code, extract_referral_code

logger = logging.getLogger(__name__)

REFERRAL_CODE_ATTEMPTS = 5


@dataclass
class JoinResult:
    waitlist: Waitlist
    signup: Signup
    referrer: Optional[Signup] = None


def month_start(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class SignupService:
    """
    The signup ledger: creation order, referral links and status
    transitions. Counter updates are issued as single UPDATE statements so
    concurrent writers against the same referrer or waitlist never lose
    increments; the per-waitlist position read is serialized by locking the
    waitlist row for the duration of the join.
    """

    def __init__(
        self,
        db: Session,
        waitlist_repo: Optional[WaitlistRepository] = None,
        signup_repo: Optional[SignupRepository] = None,
        limit_service: Optional[LimitService] = None
    ):
        self.db = db
        self.waitlist_repo = waitlist_repo or WaitlistRepository(db)
        self.signup_repo = signup_repo or SignupRepository(db)
        self.limit_service = limit_service or LimitService(db)

    def join(
        self,
        data: SignupCreate,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> JoinResult:
        waitlist = self.waitlist_repo.get_by_id(data.waitlist_id, for_update=True)

        if not waitlist:
            raise NotFoundError("Waitlist not found")

        if not waitlist.is_active:
            raise BadRequestError("This waitlist is closed and not accepting new signups")

        existing = self.signup_repo.get_by_email(waitlist.id, data.email)
        if existing:
            self.db.rollback()
            raise AlreadyRegisteredError(existing)

        since = month_start()
        self.limit_service.enforce_limit(
            waitlist.owner_id,
            LimitType.MAX_SIGNUPS_PER_MONTH,
            lambda: self.signup_repo.count_created_since(waitlist.id, since)
        )

        referrer = None
        referral_code = extract_referral_code(data.referral_link)
        if referral_code:
            candidate = self.signup_repo.get_by_referral_code(referral_code)
            # Unknown codes, and codes from other waitlists, are ignored
            if candidate and candidate.waitlist_id == waitlist.id:
                referrer = candidate

        try:
            # The counter UPDATE takes the waitlist write lock before the position
            # is read, including on engines that ignore FOR UPDATE
            self.waitlist_repo.increment_signups(waitlist.id)

            signup = self.signup_repo.create(
                waitlist_id=waitlist.id,
                email=data.email,
                referral_code=self._unique_referral_code(),
                position=self.signup_repo.get_next_position(waitlist.id),
                referred_by=referrer.referral_code if referrer else None,
                name=data.name,
                metadata=data.metadata or {},
                ip_address=ip_address,
                user_agent=user_agent
            )

            if referrer:
                self.signup_repo.increment_referral(referrer.id, waitlist.priority_boost)

            self.db.commit()
        except IntegrityError:
            # A concurrent join with the same email won the unique constraint
            self.db.rollback()
            existing = self.signup_repo.get_by_email(waitlist.id, data.email)
            if existing:
                raise AlreadyRegisteredError(existing)
            raise

        self.db.refresh(signup)
        self.db.refresh(waitlist)
        if referrer:
            self.db.refresh(referrer)

        logger.info(
            f"New signup {signup.id} on waitlist {waitlist.id} at position {signup.position}"
            + (f", referred by {referrer.id}" if referrer else "")
        )

        return JoinResult(waitlist=waitlist, signup=signup, referrer=referrer)

    def get_by_referral_code(self, referral_code: str) -> Signup:
        signup = self.signup_repo.get_by_referral_code(referral_code)

        if not signup:
            raise NotFoundError("Signup not found")

        return signup

    def get_signup(self, waitlist: Waitlist, signup_id: str) -> Signup:
        signup = self.signup_repo.get_by_id(signup_id)

        if not signup or signup.waitlist_id != waitlist.id:
            raise NotFoundError("Signup not found")

        return signup

    def list_signups(
        self,
        waitlist: Waitlist,
        limit: int = 50,
        offset: int = 0,
        status: Optional[str] = None,
        sort_by: str = "position",
        order: str = "asc"
    ) -> Tuple[List[Signup], int]:
        limit = max(1, min(limit, settings.SIGNUP_LIST_MAX_LIMIT))
        offset = max(0, offset)

        status_enum = None
        if status:
            try:
                status_enum = SignupStatus(status.lower())
            except ValueError:
                raise BadRequestError(
                    f"status must be one of: {', '.join(s.value for s in SignupStatus)}"
                )

        signups = self.signup_repo.list_by_waitlist(
            waitlist.id,
            limit=limit,
            offset=offset,
            status=status_enum,
            sort_by=sort_by,
            order=order
        )
        total = self.signup_repo.count(waitlist.id, status_enum)
        return signups, total

    def verify(self, waitlist: Waitlist, signup_id: str) -> Signup:
        """
        waiting -> verified. A signup that is already verified or admitted is
        returned unchanged.
        """
        signup = self.get_signup(waitlist, signup_id)

        if self.signup_repo.mark_verified(signup.id, datetime.now(timezone.utc)):
            self.db.commit()
            logger.info(f"Verified signup {signup.id} on waitlist {waitlist.id}")

        self.db.refresh(signup)
        return signup

    def offboard(self, waitlist: Waitlist, signup_id: str) -> Signup:
        signup = self.get_signup(waitlist, signup_id)

        if not self.signup_repo.mark_admitted(signup.id, datetime.now(timezone.utc)):
            raise ConflictError("Signup is already admitted")

        self.db.commit()
        self.db.refresh(signup)

        logger.info(f"Admitted signup {signup.id} from waitlist {waitlist.id}")
        return signup

    def advance_priority(self, waitlist: Waitlist, signup_id: str, amount: int) -> Signup:
        signup = self.get_signup(waitlist, signup_id)

        self.signup_repo.add_priority(signup.id, amount)
        self.db.commit()
        self.db.refresh(signup)

        logger.info(f"Adjusted priority of signup {signup.id} by {amount} (now {signup.priority})")
        return signup

    def delete(self, waitlist: Waitlist, signup_id: str) -> None:
        signup = self.get_signup(waitlist, signup_id)

        try:
            self.signup_repo.delete(signup)
            self.waitlist_repo.decrement_signups(waitlist.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Deleted signup {signup_id} from waitlist {waitlist.id}")

    def _unique_referral_code(self) -> str:
        for _ in range(REFERRAL_CODE_ATTEMPTS):
            code = generate_referral_code()
            if not self.signup_repo.referral_code_exists(code):
                return code
        raise RuntimeError("Could not generate a unique referral code")
