from sqlalchemy import Column, String, Integer, UniqueConstraint
from app.core.database import Base


class RateLimitBucket(Base):
    """One fixed-window request counter, shared by every instance of the service."""
    __tablename__ = "rate_limit_buckets"
    __table_args__ = (
        UniqueConstraint("key", "window_start", name="uq_rate_limit_key_window"),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(255), nullable=False, index=True)
    window_start = Column(Integer, nullable=False, comment="Epoch seconds at window start")
    count = Column(Integer, nullable=False, default=0)
