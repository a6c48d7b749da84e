"""Referral posting, browsing and lazy expiry"""

from datetime import timedelta
import uuid

import pytest

from intrarefer.models import Referral, ReferralStatus
from intrarefer.utils.helpers import utc_now

from conftest import API, referral_payload

@pytest.fixture
def referrer(register):
    headers, _ = register(role="referrer")
    return headers

@pytest.fixture
def later(monkeypatch):
    """Move the referral routes' clock forward by `days`"""
    def shift(days):
        moved = utc_now() + timedelta(days=days)
        monkeypatch.setattr("intrarefer.api.v1.referrals.router.utc_now", lambda: moved)
        monkeypatch.setattr("intrarefer.api.v1.applications.router.utc_now", lambda: moved)
        return moved
    return shift

class TestCreateReferral:
    def test_referrer_posts_active_referral(self, client, referrer):
        response = client.post(f"{API}/referrals", json=referral_payload(), headers=referrer)
        assert response.status_code == 201
        referral = response.json()["referral"]
        assert referral["status"] == "active"
        assert referral["salaryRange"] == {"min": 1000000, "max": 2000000, "currency": "INR"}
        assert referral["daysUntilDeadline"] == 14
        assert referral["views"] == 0

    def test_job_seeker_cannot_post(self, client, register):
        headers, _ = register()
        response = client.post(f"{API}/referrals", json=referral_payload(), headers=headers)
        assert response.status_code == 403

    def test_deadline_must_be_in_future(self, client, referrer):
        past = (utc_now() - timedelta(hours=1)).isoformat()
        response = client.post(f"{API}/referrals", json=referral_payload(applicationDeadline=past), headers=referrer)
        assert response.status_code == 422

    def test_salary_range_must_be_ordered(self, client, referrer):
        payload = referral_payload(salaryRange={"min": 50, "max": 10})
        response = client.post(f"{API}/referrals", json=payload, headers=referrer)
        assert response.status_code == 422

    def test_description_markup_is_stripped(self, client, referrer, create_referral):
        referral = create_referral(referrer, description="<script>alert(1)</script>Great team")
        assert "<script>" not in referral["description"]
        assert "Great team" in referral["description"]

class TestBrowseReferrals:
    def test_anonymous_sees_only_open_referrals(self, client, referrer, create_referral):
        create_referral(referrer, title="Open Role")
        create_referral(referrer, title="Draft Role", status="draft")

        response = client.get(f"{API}/referrals")
        assert response.status_code == 200
        titles = [item["title"] for item in response.json()["data"]]
        assert titles == ["Open Role"]

    def test_referrer_lists_own_referrals_in_any_status(self, client, register, referrer, create_referral):
        create_referral(referrer, title="Mine Draft", status="draft")
        other, _ = register(role="referrer")
        create_referral(other, title="Not Mine")

        response = client.get(f"{API}/referrals", params={"myReferrals": "true"}, headers=referrer)
        assert [item["title"] for item in response.json()["data"]] == ["Mine Draft"]

    def test_filters(self, client, referrer, create_referral):
        create_referral(referrer, title="Remote Python", workMode="remote", skills=["python"])
        create_referral(referrer, title="Onsite Java", workMode="onsite", skills=["java"], location="Pune")

        remote = client.get(f"{API}/referrals", params={"workMode": "remote"}).json()
        assert [item["title"] for item in remote["data"]] == ["Remote Python"]

        pune = client.get(f"{API}/referrals", params={"location": "pune"}).json()
        assert [item["title"] for item in pune["data"]] == ["Onsite Java"]

        java = client.get(f"{API}/referrals", params={"search": "java"}).json()
        assert java["total"] == 1

    def test_pagination(self, client, referrer, create_referral):
        for index in range(3):
            create_referral(referrer, title=f"Role {index}")

        body = client.get(f"{API}/referrals", params={"limit": 2, "page": 2}).json()
        assert body["total"] == 3
        assert body["pages"] == 2
        assert body["count"] == 1

    def test_detail_counts_views_except_owner(self, client, register, referrer, create_referral):
        referral = create_referral(referrer)
        seeker, _ = register()

        client.get(f"{API}/referrals/{referral['id']}", headers=referrer)
        client.get(f"{API}/referrals/{referral['id']}")
        response = client.get(f"{API}/referrals/{referral['id']}", headers=seeker)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["views"] == 2
        assert data["referrer"]["company"] is None

    def test_unknown_referral(self, client):
        response = client.get(f"{API}/referrals/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "REFERRAL_NOT_FOUND"

class TestLazyExpiry:
    def test_past_deadline_reads_as_expired(self, client, referrer, create_referral, later):
        referral = create_referral(referrer)
        later(15)

        detail = client.get(f"{API}/referrals/{referral['id']}").json()["data"]
        assert detail["status"] == "expired"
        assert detail["daysUntilDeadline"] == 0

        listing = client.get(f"{API}/referrals").json()
        assert listing["total"] == 0

    def test_expired_referral_rejects_applications(self, client, register, referrer, create_referral, later):
        referral = create_referral(referrer)
        seeker, _ = register()
        later(15)

        response = client.post(
            f"{API}/applications",
            json={"referralId": referral["id"], "coverLetter": "Please consider me"},
            headers=seeker
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "REFERRAL_NOT_ACCEPTING"

    def test_expired_can_be_closed_but_not_reactivated(self, client, referrer, create_referral, later):
        referral = create_referral(referrer)
        later(15)

        reopen = client.patch(f"{API}/referrals/{referral['id']}/status", json={"status": "active"}, headers=referrer)
        assert reopen.status_code == 400
        assert reopen.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

        close = client.patch(f"{API}/referrals/{referral['id']}/status", json={"status": "closed"}, headers=referrer)
        assert close.status_code == 200
        assert close.json()["data"]["status"] == "closed"

    def test_status_filter_follows_deadline(self, client, referrer, create_referral, later):
        create_referral(referrer, title="Overdue Role")
        create_referral(
            referrer,
            title="Long Role",
            applicationDeadline=(utc_now() + timedelta(days=60)).isoformat()
        )
        later(15)

        def listed(status):
            params = {"myReferrals": "true", "status": status}
            data = client.get(f"{API}/referrals", params=params, headers=referrer).json()["data"]
            return [(item["title"], item["status"]) for item in data]

        assert listed("active") == [("Long Role", "active")]
        assert listed("expired") == [("Overdue Role", "expired")]

    def test_activating_past_deadline_stores_expired(self, client, run_db, referrer, create_referral, later):
        referral = create_referral(referrer, status="draft")
        later(15)

        response = client.patch(f"{API}/referrals/{referral['id']}/status", json={"status": "active"}, headers=referrer)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "expired"

        async def stored_status(session):
            return (await session.get(Referral, uuid.UUID(referral["id"]))).status
        assert run_db(stored_status) == ReferralStatus.EXPIRED

class TestReferralStatus:
    def test_only_owner_changes_status(self, client, register, referrer, create_referral):
        referral = create_referral(referrer)
        other, _ = register(role="referrer")

        response = client.patch(f"{API}/referrals/{referral['id']}/status", json={"status": "closed"}, headers=other)
        assert response.status_code == 403

    def test_draft_to_active(self, client, referrer, create_referral):
        referral = create_referral(referrer, status="draft")
        response = client.patch(f"{API}/referrals/{referral['id']}/status", json={"status": "active"}, headers=referrer)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "active"

    def test_closed_is_final(self, client, referrer, create_referral):
        referral = create_referral(referrer, status="closed")
        response = client.patch(f"{API}/referrals/{referral['id']}/status", json={"status": "active"}, headers=referrer)
        assert response.status_code == 400

class TestMatchScore:
    def test_requires_subscription(self, client, register, referrer, create_referral):
        referral = create_referral(referrer)
        seeker, _ = register()

        response = client.get(f"{API}/referrals/{referral['id']}/match", headers=seeker)
        assert response.status_code == 403
        assert response.json()["error"]["subscriptionRequired"] is True

    def test_subscriber_gets_score(self, client, register, subscribe, referrer, create_referral):
        referral = create_referral(referrer, skills=["react", "node"])
        seeker, user = register()
        client.put(f"{API}/users/profile", headers=seeker, json={"skills": ["reactjs", "python"]})
        subscribe(user["id"])

        response = client.get(f"{API}/referrals/{referral['id']}/match", headers=seeker)
        assert response.status_code == 200
        assert response.json()["score"] == 50
        assert response.json()["matchedSkills"] == ["react"]

    def test_admin_gets_score(self, client, admin_headers, referrer, create_referral):
        referral = create_referral(referrer, skills=["react", "node"])

        response = client.get(f"{API}/referrals/{referral['id']}/match", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["score"] == 0
