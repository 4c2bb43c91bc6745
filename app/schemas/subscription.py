from pydantic import BaseModel, Field
from typing import Optional, List
import enum


class LimitType(str, enum.Enum):
    MAX_WAITLISTS = "max_waitlists"
    MAX_SIGNUPS_PER_MONTH = "max_signups_per_month"
    MAX_TEAM_MEMBERS = "max_team_members"


class PlanLimits(BaseModel):
    """Resolved quota snapshot for a principal; None means unlimited."""
    max_waitlists: Optional[int] = None
    max_signups_per_month: Optional[int] = None
    max_team_members: Optional[int] = None
    features: List[str] = Field(default_factory=list)
    plan_name: str
    has_subscription: bool = False
    
    def limit_for(self, limit_type: LimitType) -> Optional[int]:
        return getattr(self, limit_type.value)
    
    def has_feature(self, feature: str) -> bool:
        return feature in self.features


FREE_TIER = PlanLimits(
    max_waitlists=1,
    max_signups_per_month=100,
    max_team_members=1,
    features=[],
    plan_name="Free",
    has_subscription=False,
)


class PlanLimitsResponse(BaseModel):
    success: bool = True
    data: PlanLimits
