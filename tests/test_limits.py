"""
Subscription limit gate tests.
"""
import uuid
import pytest
from fastapi import status
from app.core.exceptions import FeatureRestrictedError, LimitExceededError
from app.models.subscription import Subscription, SubscriptionStatus
from app.schemas.subscription import LimitType
from app.services.limit_service import LimitService


class TestResolveLimits:
    """Test plan snapshot resolution."""
    
    def test_no_subscription_is_free_tier(self, db):
        """Test principals without a subscription get the Free tier."""
        limits = LimitService(db).resolve_limits("nobody")
        
        assert limits.plan_name == "Free"
        assert limits.max_waitlists == 1
        assert limits.max_signups_per_month == 100
        assert limits.max_team_members == 1
        assert limits.features == []
        assert limits.has_subscription is False
    
    def test_free_tier_snapshot_is_a_copy(self, db):
        """Test callers cannot mutate the shared Free tier."""
        service = LimitService(db)
        
        service.resolve_limits("nobody").features.append("webhooks")
        
        assert service.resolve_limits("nobody").features == []
    
    def test_active_subscription(self, db, pro_subscription):
        """Test an active subscription resolves to its plan."""
        limits = LimitService(db).resolve_limits(pro_subscription.owner_id)
        
        assert limits.plan_name == "Pro"
        assert limits.max_waitlists is None
        assert limits.has_feature("webhooks")
        assert limits.has_subscription is True
    
    def test_cancelled_subscription_falls_back(self, db, pro_plan):
        """Test cancelled subscriptions are ignored."""
        db.add(Subscription(
            id=str(uuid.uuid4()),
            owner_id="lapsed",
            plan_id=pro_plan.id,
            status=SubscriptionStatus.CANCELLED
        ))
        db.commit()
        
        assert LimitService(db).resolve_limits("lapsed").plan_name == "Free"


class TestEnforceLimit:
    """Test quota enforcement."""
    
    def test_under_limit_passes(self, db):
        """Test usage below the limit is allowed."""
        limits = LimitService(db).enforce_limit("nobody", LimitType.MAX_WAITLISTS, lambda: 0)
        
        assert limits.plan_name == "Free"
    
    def test_at_limit_rejected(self, db):
        """Test usage equal to the limit is rejected with details."""
        with pytest.raises(LimitExceededError) as exc_info:
            LimitService(db).enforce_limit("nobody", LimitType.MAX_WAITLISTS, lambda: 1)
        
        assert exc_info.value.status_code == status.HTTP_403_FORBIDDEN
        assert exc_info.value.limit_type == "max_waitlists"
        assert exc_info.value.detail["current_usage"] == 1
        assert exc_info.value.detail["limit"] == 1
    
    def test_unlimited_skips_usage(self, db, pro_subscription):
        """Test a null limit never computes usage."""
        def usage():
            raise AssertionError("usage should not be computed for unlimited plans")
        
        LimitService(db).enforce_limit(pro_subscription.owner_id, LimitType.MAX_WAITLISTS, usage)


class TestRequireFeature:
    """Test feature gating."""
    
    def test_missing_feature(self, db):
        """Test the Free tier has no premium features."""
        with pytest.raises(FeatureRestrictedError) as exc_info:
            LimitService(db).require_feature("nobody", "webhooks")
        
        assert exc_info.value.feature == "webhooks"
        assert exc_info.value.detail["current_plan"] == "Free"
    
    def test_present_feature(self, db, pro_subscription):
        """Test a plan including the feature passes."""
        limits = LimitService(db).require_feature(pro_subscription.owner_id, "webhooks")
        
        assert limits.plan_name == "Pro"


class TestWaitlistQuota:
    """Test the waitlist quota on the tenant surface."""
    
    def test_free_tier_second_waitlist_rejected(self, client, sample_waitlist, auth_headers):
        """Test a Free principal owning one waitlist cannot create another."""
        response = client.post("/api/user/waitlists", headers=auth_headers, json={"name": "Second"})
        
        assert response.status_code == status.HTTP_403_FORBIDDEN
        detail = response.json()["detail"]
        assert detail["limit_type"] == "max_waitlists"
        assert detail["current_usage"] == 1
        assert detail["limit"] == 1
        assert detail["current_plan"] == "Free"
        assert detail["upgrade_required"] is True
    
    def test_paid_plan_creates_more(self, client, sample_waitlist, pro_subscription, auth_headers):
        """Test an unlimited plan is not capped."""
        response = client.post("/api/user/waitlists", headers=auth_headers, json={"name": "Second"})
        
        assert response.status_code == status.HTTP_201_CREATED
    
    def test_limits_endpoint(self, client, db, auth_headers):
        """Test the principal can read its plan limits."""
        response = client.get("/api/user/limits", headers=auth_headers)
        
        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["plan_name"] == "Free"
        assert data["max_waitlists"] == 1
