"""
Fixed-window rate limiting backed by the shared database.

Counters live in the rate_limit_buckets table rather than process memory,
so a limit holds no matter which instance serves the request.

Usage:
    @router.post("/signup", dependencies=[Depends(signup_rate_limit)])
"""
import logging
import time
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import RateLimitedError
from app.repositories.rate_limit_repository import RateLimitRepository

logger = logging.getLogger(__name__)


class RateLimiter:
    
    def __init__(self, scope: str, limit: int, window_seconds: int):
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds
    
    def check(self, repo: RateLimitRepository, identifier: str, now: float = None) -> None:
        if self.limit <= 0:
            return
        
        now = time.time() if now is None else now
        window_start = int(now // self.window_seconds) * self.window_seconds
        count = repo.hit(f"{self.scope}:{identifier}", window_start)
        
        if count > self.limit:
            retry_after = max(1, window_start + self.window_seconds - int(now))
            logger.warning(f"[RATE_LIMIT] Exceeded | scope={self.scope} | client={identifier} | count={count}")
            raise RateLimitedError(retry_after=retry_after)
        
        # Trim expired windows on the first hit of a new window.
        if count == 1:
            repo.purge_before(window_start - self.window_seconds)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def signup_rate_limit(request: Request, db: Session = Depends(get_db)) -> None:
    limiter = RateLimiter(
        scope="signup",
        limit=settings.RATE_LIMIT_SIGNUPS_PER_MINUTE,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    limiter.check(RateLimitRepository(db), client_ip(request))
