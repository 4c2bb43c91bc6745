from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.signup import Signup, SignupStatus
from app.models.waitlist import Waitlist
from app.repositories.signup_repository import SignupRepository
from app.schemas.signup import LeaderboardEntry
from app.schemas.waitlist import WaitlistStats
from app.utils.tokens import build_referral_link


def mask_email(email: str) -> str:
    """abcdef@example.com -> abc***@example.com"""
    if not email or "@" not in email:
        return "***@***"
    local, domain = email.split("@", 1)
    return f"{local[:3]}***@{domain}"


def serialize_signup(
    signup: Signup,
    current_position: Optional[int] = None,
    waitlist: Optional[Waitlist] = None
) -> dict:
    data = signup.to_dict()
    data["referral_link"] = build_referral_link(
        settings.PUBLIC_BASE_URL, signup.waitlist_id, signup.referral_code
    )
    data["current_position"] = None if waitlist is not None and waitlist.hides_position else current_position
    return data


class RankingService:
    """
    Read-side ranking over the signup ledger. Nothing here is stored: the
    current position is counted on every read so it reflects the latest
    referral boosts without a reindexing pass.
    """

    def __init__(self, db: Session, signup_repo: Optional[SignupRepository] = None):
        self.db = db
        self.signup_repo = signup_repo or SignupRepository(db)

    def position_of(self, signup: Signup) -> int:
        """
        1 + the number of non-admitted signups ranked ahead: higher priority,
        or equal priority with an earlier join position.
        """
        return self.signup_repo.count_ahead(signup.waitlist_id, signup.priority, signup.position) + 1

    def current_position(self, waitlist_id: str, email: str) -> Tuple[Signup, int]:
        signup = self.signup_repo.get_by_email(waitlist_id, email)

        if not signup:
            raise NotFoundError("Signup not found")

        return signup, self.position_of(signup)

    def leaderboard(self, waitlist_id: str, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        if limit is None:
            limit = settings.LEADERBOARD_DEFAULT_LIMIT
        limit = max(1, min(limit, settings.LEADERBOARD_MAX_LIMIT))

        signups = self.signup_repo.get_leaderboard(waitlist_id, limit)
        return [
            LeaderboardEntry(
                rank=index + 1,
                email=mask_email(signup.email),
                referral_count=signup.referral_count,
                priority=signup.priority
            )
            for index, signup in enumerate(signups)
        ]

    def stats(self, waitlist_id: str) -> WaitlistStats:
        counts = self.signup_repo.status_counts(waitlist_id)
        return WaitlistStats(
            total_signups=sum(counts.values()),
            waiting=counts.get(SignupStatus.WAITING, 0),
            verified=counts.get(SignupStatus.VERIFIED, 0),
            admitted=counts.get(SignupStatus.ADMITTED, 0),
            total_referrals=self.signup_repo.total_referrals(waitlist_id)
        )
