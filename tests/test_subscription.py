"""Subscription plans, signatures and guarded activation"""

from datetime import datetime, timedelta, timezone

import pytest

from intrarefer.core.exceptions import InvalidPaymentException
from intrarefer.models import Payment, PaymentStatus, SubscriptionType, User, UserRole
from intrarefer.services.subscription import (
    SubscriptionService,
    compute_subscription_window,
    get_plan,
    list_plans,
    verify_payment_signature,
    verify_webhook_signature,
)

from conftest import sign

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

class TestPlans:
    def test_monthly_plan(self):
        plan = get_plan(SubscriptionType.MONTHLY)
        assert plan["amount"] == 9900
        assert plan["currency"] == "INR"
        assert plan["duration"] == 30

    def test_yearly_plan(self):
        plan = get_plan("yearly")
        assert plan["amount"] == 99000
        assert plan["duration"] == 365

    def test_unknown_plan_rejected(self):
        with pytest.raises(InvalidPaymentException):
            get_plan("weekly")

    def test_list_plans_covers_every_type(self):
        assert [plan["id"] for plan in list_plans()] == ["monthly", "yearly"]

class TestSubscriptionWindow:
    def test_monthly_is_thirty_fixed_days(self):
        start, end = compute_subscription_window(SubscriptionType.MONTHLY, NOW)
        assert start == NOW
        assert end - start == timedelta(hours=30 * 24)

    def test_yearly_is_365_fixed_days_even_across_leap_day(self):
        start, end = compute_subscription_window(SubscriptionType.YEARLY, datetime(2024, 2, 1, tzinfo=timezone.utc))
        assert end - start == timedelta(hours=365 * 24)
        assert end == datetime(2025, 1, 31, tzinfo=timezone.utc)

class TestSignatures:
    def test_payment_signature_round_trip(self):
        signature = sign(b"order_1|pay_1", "shh")
        assert verify_payment_signature("order_1", "pay_1", signature, secret="shh")

    def test_payment_signature_rejects_swapped_ids(self):
        signature = sign(b"order_1|pay_1", "shh")
        assert not verify_payment_signature("pay_1", "order_1", signature, secret="shh")

    def test_missing_signature_fails(self):
        assert not verify_payment_signature("order_1", "pay_1", None, secret="shh")
        assert not verify_webhook_signature(b"{}", "", secret="shh")

    def test_webhook_signature_covers_raw_body(self):
        body = b'{"event": "payment.captured"}'
        signature = sign(body, "whsec")
        assert verify_webhook_signature(body, signature, secret="whsec")
        assert not verify_webhook_signature(body + b" ", signature, secret="whsec")

class TestSubscriptionService:
    @pytest.fixture
    def payment_ids(self, run_db):
        async def create(session):
            user = User(
                name="Buyer",
                email="buyer@example.com",
                password_hash="x",
                role=UserRole.JOB_SEEKER,
                skills=[],
                desired_roles=[]
            )
            session.add(user)
            await session.flush()
            payment = Payment(
                user_id=user.id,
                gateway_order_id="order_svc1",
                amount=9900,
                currency="INR",
                status=PaymentStatus.CREATED,
                subscription_type=SubscriptionType.MONTHLY
            )
            session.add(payment)
            await session.flush()
            return user.id, payment.id
        return run_db(create)

    def _mark_paid(self, run_db, now=NOW):
        async def work(session):
            service = SubscriptionService(session)
            payment = await service.get_payment_by_order_id("order_svc1")
            return await service.mark_paid(payment, "pay_svc1", "sig", now)
        return run_db(work)

    def _load(self, run_db, user_id, payment_id):
        async def work(session):
            return await session.get(User, user_id), await session.get(Payment, payment_id)
        return run_db(work)

    def test_mark_paid_activates_user(self, run_db, payment_ids):
        user_id, payment_id = payment_ids
        assert self._mark_paid(run_db) is True

        user, payment = self._load(run_db, user_id, payment_id)
        assert payment.status == PaymentStatus.PAID
        assert payment.subscription_end == NOW + timedelta(days=30)
        assert user.is_subscribed is True
        assert user.subscription_id == payment_id
        assert user.subscription_end == payment.subscription_end

    def test_second_activation_is_a_noop(self, run_db, payment_ids):
        user_id, payment_id = payment_ids
        assert self._mark_paid(run_db) is True
        assert self._mark_paid(run_db, now=NOW + timedelta(days=5)) is False

        user, payment = self._load(run_db, user_id, payment_id)
        assert user.subscription_end == NOW + timedelta(days=30)

    def test_failure_never_downgrades_paid(self, run_db, payment_ids):
        user_id, payment_id = payment_ids
        self._mark_paid(run_db)

        async def fail(session):
            service = SubscriptionService(session)
            payment = await service.get_payment_by_order_id("order_svc1")
            return await service.mark_failed(payment, "late failure")

        assert run_db(fail) is False
        _, payment = self._load(run_db, user_id, payment_id)
        assert payment.status == PaymentStatus.PAID

    def test_full_refund_ends_subscription(self, run_db, payment_ids):
        user_id, payment_id = payment_ids
        self._mark_paid(run_db)

        async def refund(session):
            service = SubscriptionService(session)
            payment = await service.get_payment_by_order_id("order_svc1")
            return await service.process_refund(payment, NOW + timedelta(days=1), refund_id="rfnd_1", reason="test")

        assert run_db(refund) is True
        user, payment = self._load(run_db, user_id, payment_id)
        assert payment.status == PaymentStatus.REFUNDED
        assert payment.refund_amount == 9900
        assert user.is_subscribed is False
        assert user.subscription_id is None
