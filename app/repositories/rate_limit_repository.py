from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from app.models.rate_limit import RateLimitBucket


class RateLimitRepository:
    
    def __init__(self, db: Session):
        self.db = db
    
    def hit(self, key: str, window_start: int) -> int:
        """
        Count one request against (key, window) and return the new total.
        The increment is a single UPDATE so concurrent instances never lose hits.
        """
        for _ in range(2):
            updated = self.db.query(RateLimitBucket).filter(
                RateLimitBucket.key == key,
                RateLimitBucket.window_start == window_start
            ).update(
                {RateLimitBucket.count: RateLimitBucket.count + 1},
                synchronize_session=False
            )
            
            if updated:
                self.db.commit()
                return self.db.query(RateLimitBucket.count).filter(
                    RateLimitBucket.key == key,
                    RateLimitBucket.window_start == window_start
                ).scalar()
            
            try:
                self.db.add(RateLimitBucket(key=key, window_start=window_start, count=1))
                self.db.commit()
                return 1
            except IntegrityError:
                # Another instance opened the window first.
                self.db.rollback()
        
        raise RuntimeError(f"Could not record rate limit hit for {key}")
    
    def purge_before(self, window_start: int) -> int:
        deleted = self.db.query(RateLimitBucket).filter(
            RateLimitBucket.window_start < window_start
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted
