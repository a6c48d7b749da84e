"""Applying to referrals, review workflow and messaging"""

from datetime import timedelta

import pytest

from intrarefer.services.quota import week_start
from intrarefer.utils.helpers import utc_now

from conftest import API

@pytest.fixture
def referrer(register):
    return register(role="referrer")

@pytest.fixture
def seeker(register):
    return register()

def apply(client, headers, referral_id, **extra):
    payload = {"referralId": referral_id, "coverLetter": "I would love to join this team."}
    payload.update(extra)
    return client.post(f"{API}/applications", json=payload, headers=headers)

class TestWeeklyQuota:
    def test_fourth_application_in_a_week_is_refused(self, client, referrer, seeker, create_referral):
        referrals = [create_referral(referrer[0], title=f"Role {index}") for index in range(4)]

        for expected_used, referral in enumerate(referrals[:3], start=1):
            response = apply(client, seeker[0], referral["id"])
            assert response.status_code == 201, response.text
            assert response.json()["quota"]["used"] == expected_used

        response = apply(client, seeker[0], referrals[3]["id"])
        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "APPLICATION_LIMIT_REACHED"
        assert error["limitReached"] is True
        assert error["upgradeRequired"] is True

        quota = client.get(f"{API}/applications/quota", headers=seeker[0]).json()
        assert quota == {**quota, "limit": 3, "used": 3, "remaining": 0, "unlimited": False}

        listing = client.get(f"{API}/applications", headers=seeker[0]).json()
        assert listing["total"] == 3

    def test_subscriber_is_not_limited(self, client, referrer, seeker, subscribe, create_referral):
        subscribe(seeker[1]["id"])
        referrals = [create_referral(referrer[0], title=f"Role {index}") for index in range(4)]

        for referral in referrals:
            response = apply(client, seeker[0], referral["id"])
            assert response.status_code == 201
        assert response.json()["quota"]["unlimited"] is True

        quota = client.get(f"{API}/applications/quota", headers=seeker[0]).json()
        assert quota["used"] == 0
        assert quota["limit"] is None

    def test_duplicate_does_not_consume_quota(self, client, referrer, seeker, create_referral):
        referral = create_referral(referrer[0])
        assert apply(client, seeker[0], referral["id"]).status_code == 201

        response = apply(client, seeker[0], referral["id"])
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_APPLICATION"

        quota = client.get(f"{API}/applications/quota", headers=seeker[0]).json()
        assert quota["used"] == 1

    def test_limit_resets_on_monday(self, client, monkeypatch, referrer, seeker, create_referral):
        next_monday = week_start(utc_now()) + timedelta(days=7)
        clock = {"now": next_monday - timedelta(minutes=30)}
        monkeypatch.setattr("intrarefer.api.v1.applications.router.utc_now", lambda: clock["now"])
        referrals = [create_referral(referrer[0], title=f"Role {index}") for index in range(5)]

        for referral in referrals[:3]:
            assert apply(client, seeker[0], referral["id"]).status_code == 201
        assert apply(client, seeker[0], referrals[3]["id"]).status_code == 403

        clock["now"] = next_monday + timedelta(minutes=30)
        response = apply(client, seeker[0], referrals[4]["id"])
        assert response.status_code == 201
        assert response.json()["quota"]["used"] == 1
        assert response.json()["quota"]["remaining"] == 2

class TestCreateApplication:
    def test_application_links_referrer_and_counts(self, client, referrer, seeker, create_referral):
        referral = create_referral(referrer[0])
        response = apply(client, seeker[0], referral["id"], expectedSalary=1500000, noticePeriod=30)

        assert response.status_code == 201
        application = response.json()["application"]
        assert application["status"] == "pending"
        assert application["referrerId"] == referrer[1]["id"]
        assert application["referral"]["title"] == referral["title"]
        assert application["noticePeriod"] == 30

        detail = client.get(f"{API}/referrals/{referral['id']}").json()["data"]
        assert detail["applicationCount"] == 1

    def test_referrer_cannot_apply(self, client, referrer, create_referral):
        referral = create_referral(referrer[0])
        assert apply(client, referrer[0], referral["id"]).status_code == 403

    def test_draft_referral_not_accepting(self, client, referrer, seeker, create_referral):
        referral = create_referral(referrer[0], status="draft")
        response = apply(client, seeker[0], referral["id"])
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "REFERRAL_NOT_ACCEPTING"

    def test_unknown_referral(self, client, seeker):
        response = apply(client, seeker[0], "00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404

class TestReviewWorkflow:
    @pytest.fixture
    def application(self, client, referrer, seeker, create_referral):
        referral = create_referral(referrer[0])
        return apply(client, seeker[0], referral["id"]).json()["application"]

    def test_referrer_shortlists(self, client, referrer, application):
        response = client.patch(
            f"{API}/applications/{application['id']}/status",
            json={"status": "shortlisted", "referrerNotes": "<b>Strong</b> profile"},
            headers=referrer[0]
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "shortlisted"
        assert data["referrerNotes"] == "Strong profile"
        assert data["reviewedAt"] is not None

    def test_shortlisted_cannot_be_withdrawn(self, client, referrer, seeker, application):
        client.patch(f"{API}/applications/{application['id']}/status", json={"status": "shortlisted"}, headers=referrer[0])
        response = client.post(f"{API}/applications/{application['id']}/withdraw", headers=seeker[0])
        assert response.status_code == 400

    def test_seeker_withdraws_pending(self, client, seeker, application):
        response = client.post(f"{API}/applications/{application['id']}/withdraw", headers=seeker[0])
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "withdrawn"

    def test_referrer_cannot_withdraw_for_seeker(self, client, referrer, application):
        response = client.patch(f"{API}/applications/{application['id']}/status", json={"status": "withdrawn"}, headers=referrer[0])
        assert response.status_code == 400

    def test_decision_is_final(self, client, referrer, application):
        client.patch(f"{API}/applications/{application['id']}/status", json={"status": "rejected"}, headers=referrer[0])
        response = client.patch(f"{API}/applications/{application['id']}/status", json={"status": "accepted"}, headers=referrer[0])
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    def test_other_referrer_is_forbidden(self, client, register, application):
        other, _ = register(role="referrer")
        assert client.get(f"{API}/applications/{application['id']}", headers=other).status_code == 403
        response = client.patch(f"{API}/applications/{application['id']}/status", json={"status": "reviewed"}, headers=other)
        assert response.status_code == 403

    def test_edit_only_while_pending(self, client, referrer, seeker, application):
        edited = client.patch(f"{API}/applications/{application['id']}", json={"coverLetter": "Updated letter"}, headers=seeker[0])
        assert edited.status_code == 200
        assert edited.json()["data"]["coverLetter"] == "Updated letter"

        client.patch(f"{API}/applications/{application['id']}/status", json={"status": "reviewed"}, headers=referrer[0])
        locked = client.patch(f"{API}/applications/{application['id']}", json={"coverLetter": "Again"}, headers=seeker[0])
        assert locked.status_code == 400
        assert locked.json()["error"]["code"] == "APPLICATION_LOCKED"

    def test_messages_record_sender(self, client, referrer, seeker, application):
        client.post(f"{API}/applications/{application['id']}/messages", json={"message": "Any update?"}, headers=seeker[0])
        response = client.post(
            f"{API}/applications/{application['id']}/messages",
            json={"message": "Interview next week"},
            headers=referrer[0]
        )
        assert response.status_code == 200
        history = response.json()["data"]["communicationHistory"]
        assert [(entry["sender"], entry["message"]) for entry in history] == [
            ("jobSeeker", "Any update?"),
            ("referrer", "Interview next week")
        ]
        assert response.json()["data"]["lastContactedAt"] is not None

    def test_statistics_are_scoped(self, client, referrer, seeker, register, application):
        client.patch(f"{API}/applications/{application['id']}/status", json={"status": "reviewed"}, headers=referrer[0])

        stats = client.get(f"{API}/applications/stats", headers=referrer[0]).json()
        assert stats["total"] == 1
        assert stats["byStatus"]["reviewed"] == 1

        outsider, _ = register()
        assert client.get(f"{API}/applications/stats", headers=outsider).json()["total"] == 0
