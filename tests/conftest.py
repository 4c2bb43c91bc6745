"""
Pytest configuration file.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import copy
import uuid
import pytest
from unittest.mock import Mock, patch
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.core.config import settings
from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.models.signup import Signup, SignupStatus
from app.models.subscription import SubscriptionPlan, Subscription, SubscriptionStatus
from app.repositories.waitlist_repository import WaitlistRepository
from app.services.waitlist_service import DEFAULT_SETTINGS
from main import app

SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///./test.db"

OWNER_ID = "owner-123"
OTHER_OWNER_ID = "owner-456"

ALL_FEATURES = [
    "webhooks",
    "automation_integration",
    "remove_branding",
    "hide_position_count",
    "move_user_position",
]

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def db():
    """Create test database."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db):
    """Session factory on the test database, for work spread across threads."""
    return TestingSessionLocal


@pytest.fixture(scope="function")
def client(db):
    """Create test client."""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer headers for the owner of sample_waitlist."""
    token = create_access_token({"sub": OWNER_ID})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers():
    """Bearer headers for a principal that owns nothing."""
    token = create_access_token({"sub": OTHER_OWNER_ID})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_waitlist(db):
    """Create a sample active waitlist owned by OWNER_ID."""
    return WaitlistRepository(db).create(
        owner_id=OWNER_ID,
        name="Launch Waitlist",
        description="Early access list",
        settings=copy.deepcopy(DEFAULT_SETTINGS),
        priority_boost=30
    )


@pytest.fixture
def other_waitlist(db):
    """Create a waitlist owned by a different principal."""
    return WaitlistRepository(db).create(
        owner_id=OTHER_OWNER_ID,
        name="Other Waitlist",
        settings=copy.deepcopy(DEFAULT_SETTINGS)
    )


@pytest.fixture
def pro_plan(db):
    """Create a plan with every feature and no quotas."""
    plan = SubscriptionPlan(
        id=str(uuid.uuid4()),
        name="Pro",
        max_waitlists=None,
        max_signups_per_month=None,
        max_team_members=None,
        features=list(ALL_FEATURES),
        is_active=True
    )
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


@pytest.fixture
def pro_subscription(db, pro_plan):
    """Put OWNER_ID on the Pro plan."""
    subscription = Subscription(
        id=str(uuid.uuid4()),
        owner_id=OWNER_ID,
        plan_id=pro_plan.id,
        status=SubscriptionStatus.ACTIVE
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    return subscription


@pytest.fixture
def automation_waitlist(db, sample_waitlist, pro_subscription):
    """sample_waitlist with the automation connector switched on."""
    waitlist_settings = copy.deepcopy(sample_waitlist.settings)
    waitlist_settings["connectors"] = {"automation": {"enabled": True, "events": {}}}
    return WaitlistRepository(db).update(sample_waitlist, settings=waitlist_settings)


@pytest.fixture
def make_signup(db):
    """Factory inserting signups directly with explicit rank state."""
    def _make_signup(waitlist, email, position, priority=0, referral_count=0, status=SignupStatus.WAITING):
        signup = Signup(
            id=str(uuid.uuid4()),
            waitlist_id=waitlist.id,
            email=email,
            referral_code=f"code{position}{uuid.uuid4().hex[:6]}",
            referral_count=referral_count,
            priority=priority,
            position=position,
            status=status,
            metadata_={}
        )
        db.add(signup)
        db.commit()
        db.refresh(signup)
        return signup
    return _make_signup


@pytest.fixture(autouse=True)
def disable_rate_limit(monkeypatch):
    """Tests join repeatedly from one client address."""
    monkeypatch.setattr(settings, "RATE_LIMIT_SIGNUPS_PER_MINUTE", 0)


@pytest.fixture(autouse=True)
def mock_requests_post():
    """Mock outbound HTTP so no notification leaves the test run."""
    with patch("app.services.notification_service.requests.post") as mock_post:
        mock_post.return_value = Mock(status_code=200)
        yield mock_post
