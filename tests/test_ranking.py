"""
Ranking engine tests: live positions, leaderboard and stats.
"""
import pytest
from fastapi import status
from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.signup import SignupStatus
from app.repositories.waitlist_repository import WaitlistRepository
from app.services.ranking_service import RankingService, mask_email


class TestMaskEmail:
    """Test public email masking."""
    
    def test_mask_keeps_three_characters_and_domain(self):
        """Test the standard mask."""
        assert mask_email("abcdef@example.com") == "abc***@example.com"
    
    def test_mask_short_local_part(self):
        """Test a local part shorter than three characters."""
        assert mask_email("ab@example.com") == "ab***@example.com"
    
    def test_mask_malformed(self):
        """Test values without an @ are fully masked."""
        assert mask_email("nobody") == "***@***"


class TestCurrentPosition:
    """Test live position resolution."""
    
    def test_higher_priority_ranks_first(self, db, sample_waitlist, make_signup):
        """Test priority outranks join order."""
        early = make_signup(sample_waitlist, "early@example.com", 1, priority=0)
        late = make_signup(sample_waitlist, "late@example.com", 2, priority=30)
        ranking = RankingService(db)
        
        assert ranking.position_of(late) == 1
        assert ranking.position_of(early) == 2
    
    def test_equal_priority_ties_break_on_position(self, db, sample_waitlist, make_signup):
        """Test join order decides between equal priorities."""
        signups = [
            make_signup(sample_waitlist, f"user{i}@example.com", i, priority=10)
            for i in range(1, 4)
        ]
        ranking = RankingService(db)
        
        assert [ranking.position_of(s) for s in signups] == [1, 2, 3]
    
    def test_admitted_signups_excluded(self, db, sample_waitlist, make_signup):
        """Test admitted signups do not count toward anyone's position."""
        make_signup(sample_waitlist, "vip@example.com", 1, priority=100, status=SignupStatus.ADMITTED)
        waiting = make_signup(sample_waitlist, "waiting@example.com", 2)
        
        assert RankingService(db).position_of(waiting) == 1
    
    def test_verified_signups_still_ranked(self, db, sample_waitlist, make_signup):
        """Test verification does not remove a signup from ranking."""
        make_signup(sample_waitlist, "verified@example.com", 1, status=SignupStatus.VERIFIED)
        waiting = make_signup(sample_waitlist, "waiting@example.com", 2)
        
        assert RankingService(db).position_of(waiting) == 2
    
    def test_ordering_invariant(self, db, sample_waitlist, make_signup):
        """Test positions are a strict ordering by (priority desc, position asc)."""
        specs = [(1, 0), (2, 60), (3, 30), (4, 60), (5, 0), (6, 90)]
        signups = [
            make_signup(sample_waitlist, f"user{position}@example.com", position, priority=priority)
            for position, priority in specs
        ]
        ranking = RankingService(db)
        
        ranked = sorted(signups, key=lambda s: ranking.position_of(s))
        assert [s.position for s in ranked] == [6, 2, 4, 3, 1, 5]
        assert sorted(ranking.position_of(s) for s in signups) == [1, 2, 3, 4, 5, 6]
    
    def test_current_position_by_email(self, db, sample_waitlist, make_signup):
        """Test lookup by email is case-insensitive."""
        make_signup(sample_waitlist, "alice@example.com", 1)
        
        signup, position = RankingService(db).current_position(sample_waitlist.id, "ALICE@example.com")
        
        assert signup.email == "alice@example.com"
        assert position == 1
    
    def test_current_position_not_found(self, db, sample_waitlist):
        """Test an unknown email raises NotFound."""
        with pytest.raises(NotFoundError):
            RankingService(db).current_position(sample_waitlist.id, "nobody@example.com")


class TestReferralScenario:
    """Walk through a referral reshuffling the queue end to end."""
    
    def test_referral_reorders_queue_and_leaderboard(self, client, sample_waitlist):
        """Test C referring D moves C to the front of positions and leaderboard."""
        emails = ["alice@example.com", "bob@example.com", "carol@example.com"]
        created = {}
        for email in emails:
            response = client.post("/api/signup", json={"email": email, "waitlist_id": sample_waitlist.id})
            created[email] = response.json()["data"]
        
        leaderboard = client.get(f"/api/waitlist/{sample_waitlist.id}/leaderboard").json()["data"]
        assert [entry["email"] for entry in leaderboard] == [
            "ali***@example.com", "bob***@example.com", "car***@example.com"
        ]
        
        response = client.post("/api/signup", json={
            "email": "dave@example.com",
            "waitlist_id": sample_waitlist.id,
            "referral_link": created["carol@example.com"]["referral_code"]
        })
        assert response.status_code == status.HTTP_201_CREATED
        
        positions = {}
        for email in emails + ["dave@example.com"]:
            check = client.get(f"/api/signup/check/{sample_waitlist.id}/{email}").json()
            positions[email] = check["data"]["current_position"]
        
        assert positions == {
            "carol@example.com": 1,
            "alice@example.com": 2,
            "bob@example.com": 3,
            "dave@example.com": 4,
        }
        
        carol = client.get(f"/api/signup/check/{sample_waitlist.id}/carol@example.com").json()["data"]
        assert carol["referral_count"] == 1
        
        response = client.get(f"/api/waitlist/{sample_waitlist.id}/leaderboard?limit=2")
        assert response.json()["data"] == [
            {"rank": 1, "email": "car***@example.com", "referral_count": 1, "priority": 30},
            {"rank": 2, "email": "ali***@example.com", "referral_count": 0, "priority": 0},
        ]


class TestLeaderboard:
    """Test the public leaderboard."""
    
    def test_leaderboard_orders_by_priority_then_referrals(self, db, sample_waitlist, make_signup):
        """Test referral count breaks priority ties."""
        make_signup(sample_waitlist, "one@example.com", 1, priority=30, referral_count=1)
        make_signup(sample_waitlist, "two@example.com", 2, priority=30, referral_count=3)
        make_signup(sample_waitlist, "three@example.com", 3, priority=60, referral_count=0)
        
        entries = RankingService(db).leaderboard(sample_waitlist.id, 10)
        
        assert [entry.email for entry in entries] == [
            "thr***@example.com", "two***@example.com", "one***@example.com"
        ]
        assert [entry.rank for entry in entries] == [1, 2, 3]
    
    def test_leaderboard_excludes_admitted(self, db, sample_waitlist, make_signup):
        """Test admitted signups never appear on the leaderboard."""
        make_signup(sample_waitlist, "admitted@example.com", 1, priority=500, status=SignupStatus.ADMITTED)
        make_signup(sample_waitlist, "waiting@example.com", 2)
        
        entries = RankingService(db).leaderboard(sample_waitlist.id, 10)
        
        assert [entry.email for entry in entries] == ["wai***@example.com"]
    
    def test_leaderboard_limit_is_capped(self, db, sample_waitlist, make_signup, monkeypatch):
        """Test oversized limits are clamped to the configured maximum."""
        monkeypatch.setattr(settings, "LEADERBOARD_MAX_LIMIT", 2)
        for i in range(1, 5):
            make_signup(sample_waitlist, f"user{i}@example.com", i)
        
        entries = RankingService(db).leaderboard(sample_waitlist.id, 50)
        
        assert len(entries) == 2
    
    def test_empty_leaderboard(self, client, sample_waitlist):
        """Test an empty waitlist has an empty leaderboard."""
        response = client.get(f"/api/waitlist/{sample_waitlist.id}/leaderboard")
        
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"] == []
    
    def test_leaderboard_disabled(self, client, db, sample_waitlist):
        """Test a disabled leaderboard is forbidden."""
        waitlist_settings = dict(sample_waitlist.settings)
        waitlist_settings["show_leaderboard"] = False
        WaitlistRepository(db).update(sample_waitlist, settings=waitlist_settings)
        
        response = client.get(f"/api/waitlist/{sample_waitlist.id}/leaderboard")
        
        assert response.status_code == status.HTTP_403_FORBIDDEN
    
    def test_leaderboard_unknown_waitlist(self, client, db):
        """Test an unknown waitlist is not found."""
        response = client.get("/api/waitlist/missing/leaderboard")
        
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestStats:
    """Test aggregate statistics."""
    
    def test_stats_counts_by_status(self, client, sample_waitlist, make_signup):
        """Test counts per status and summed referrals."""
        make_signup(sample_waitlist, "a@example.com", 1, referral_count=2)
        make_signup(sample_waitlist, "b@example.com", 2, referral_count=1, status=SignupStatus.VERIFIED)
        make_signup(sample_waitlist, "c@example.com", 3, status=SignupStatus.ADMITTED)
        
        response = client.get(f"/api/waitlist/{sample_waitlist.id}/stats")
        
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"] == {
            "total_signups": 3,
            "waiting": 1,
            "verified": 1,
            "admitted": 1,
            "total_referrals": 3,
        }
    
    def test_stats_empty_waitlist(self, db, sample_waitlist):
        """Test an empty waitlist reports zeros."""
        stats = RankingService(db).stats(sample_waitlist.id)
        
        assert stats.total_signups == 0
        assert stats.total_referrals == 0


class TestPublicWaitlist:
    """Test public waitlist metadata."""
    
    def test_public_waitlist_hides_credentials(self, client, sample_waitlist):
        """Test public metadata carries display settings only."""
        response = client.get(f"/api/waitlist/{sample_waitlist.id}")
        
        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["name"] == "Launch Waitlist"
        assert set(data["settings"]) == {"branding", "show_leaderboard", "widget", "social", "questions"}
        assert "api_key" not in data
        assert "connectors" not in data["settings"]
