import logging
from typing import Callable, Optional
from sqlalchemy.orm import Session

from app.core.exceptions import FeatureRestrictedError, LimitExceededError
from app.repositories.subscription_repository import SubscriptionRepository
from app.schemas.subscription import PlanLimits, LimitType, FREE_TIER

logger = logging.getLogger(__name__)

FEATURE_WEBHOOKS = "webhooks"
FEATURE_AUTOMATION = "automation_integration"
FEATURE_REMOVE_BRANDING = "remove_branding"
FEATURE_HIDE_POSITION_COUNT = "hide_position_count"
FEATURE_MOVE_USER_POSITION = "move_user_position"


class LimitService:
    """
    Subscription limit gate. Resolves a principal's plan snapshot and
    enforces quotas and feature flags ahead of registry/ledger writes.

    The quota check and the write that follows are not one atomic unit:
    two concurrent requests can both pass the check, so quotas may be
    overshot by the number of in-flight requests.
    """

    def __init__(self, db: Session, subscription_repo: Optional[SubscriptionRepository] = None):
        self.db = db
        self.subscription_repo = subscription_repo or SubscriptionRepository(db)

    def resolve_limits(self, principal_id: str) -> PlanLimits:
        subscription = self.subscription_repo.get_active_for_owner(principal_id)

        if not subscription or not subscription.plan:
            return FREE_TIER.model_copy(deep=True)

        plan = subscription.plan
        return PlanLimits(
            max_waitlists=plan.max_waitlists,
            max_signups_per_month=plan.max_signups_per_month,
            max_team_members=plan.max_team_members,
            features=list(plan.features or []),
            plan_name=plan.name,
            has_subscription=True
        )

    def enforce_limit(
        self,
        principal_id: str,
        limit_type: LimitType,
        current_usage_fn: Callable[[], int]
    ) -> PlanLimits:
        limits = self.resolve_limits(principal_id)
        limit = limits.limit_for(limit_type)

        if limit is None:
            return limits

        current_usage = current_usage_fn()
        if current_usage >= limit:
            logger.info(
                f"[LIMIT] Rejected | principal={principal_id} | limit_type={limit_type.value} | "
                f"usage={current_usage} | limit={limit} | plan={limits.plan_name}"
            )
            raise LimitExceededError(
                limit_type=limit_type.value,
                current_usage=current_usage,
                limit=limit,
                plan_name=limits.plan_name
            )

        return limits

    def require_feature(self, principal_id: str, feature: str) -> PlanLimits:
        limits = self.resolve_limits(principal_id)

        if not limits.has_feature(feature):
            raise FeatureRestrictedError(feature=feature, plan_name=limits.plan_name)

        return limits
