"""Model helpers"""

from datetime import datetime, timedelta, timezone

from intrarefer.models import (
    Application,
    ApplicationStatus,
    ExperienceLevel,
    JobType,
    Referral,
    ReferralStatus,
    User,
)

NOW = datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc)

def make_referral(status=ReferralStatus.ACTIVE, deadline=NOW + timedelta(days=3), **kwargs):
    return Referral(
        title="Data Engineer",
        company="Acme Corp",
        location="Remote",
        job_type=JobType.FULL_TIME,
        experience_level=ExperienceLevel.SENIOR,
        description="Pipelines",
        requirements=["SQL"],
        skills=["spark"],
        benefits=[],
        status=status,
        application_deadline=deadline,
        is_active=kwargs.pop("is_active", True),
        **kwargs
    )

class TestReferral:
    def test_active_before_deadline(self):
        referral = make_referral()
        assert referral.effective_status(NOW) == ReferralStatus.ACTIVE
        assert referral.is_accepting_applications(NOW)
        assert referral.days_until_deadline(NOW) == 3

    def test_partial_day_rounds_up(self):
        referral = make_referral(deadline=NOW + timedelta(hours=1))
        assert referral.days_until_deadline(NOW) == 1

    def test_active_past_deadline_reads_expired(self):
        referral = make_referral(deadline=NOW - timedelta(seconds=1))
        assert referral.effective_status(NOW) == ReferralStatus.EXPIRED
        assert not referral.is_accepting_applications(NOW)
        assert referral.days_until_deadline(NOW) == 0
        # Stored status is untouched by reads
        assert referral.status == ReferralStatus.ACTIVE

    def test_closed_stays_closed_past_deadline(self):
        referral = make_referral(status=ReferralStatus.CLOSED, deadline=NOW - timedelta(days=1))
        assert referral.effective_status(NOW) == ReferralStatus.CLOSED

    def test_disabled_referral_not_accepting(self):
        assert not make_referral(is_active=False).is_accepting_applications(NOW)

    def test_no_deadline_never_expires(self):
        referral = make_referral(deadline=None)
        assert not referral.is_expired(NOW + timedelta(days=3650))
        assert referral.days_until_deadline(NOW) is None

class TestApplication:
    def test_withdrawable_statuses(self):
        assert Application(status=ApplicationStatus.PENDING).can_be_withdrawn()
        assert Application(status=ApplicationStatus.REVIEWED).can_be_withdrawn()
        assert not Application(status=ApplicationStatus.SHORTLISTED).can_be_withdrawn()

    def test_only_pending_is_editable(self):
        assert Application(status=ApplicationStatus.PENDING).can_be_updated_by_job_seeker()
        assert not Application(status=ApplicationStatus.REVIEWED).can_be_updated_by_job_seeker()

class TestUser:
    def test_subscription_window_end_is_exclusive(self):
        user = User(is_subscribed=True, subscription_end=NOW)
        assert user.is_subscription_active(NOW - timedelta(seconds=1))
        assert not user.is_subscription_active(NOW)

    def test_flag_without_window_is_inactive(self):
        assert not User(is_subscribed=True, subscription_end=None).is_subscription_active(NOW)
