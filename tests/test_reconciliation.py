"""Subscription anomaly detection and repair"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from intrarefer.models import Payment, PaymentStatus, SubscriptionType, User, UserRole
from intrarefer.services.reconciliation import find_subscription_anomalies, reconcile_subscriptions
from intrarefer.core.celery_app import celery_app
from intrarefer.tasks import reconciliation_tasks

from conftest import API

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)

@pytest.fixture
def orphaned_payment(run_db):
    """A paid, unexpired payment whose user was never marked subscribed"""
    async def create(session):
        user = User(
            name="Orphan",
            email="orphan@example.com",
            password_hash="x",
            role=UserRole.JOB_SEEKER,
            is_subscribed=False,
            skills=[],
            desired_roles=[]
        )
        session.add(user)
        await session.flush()
        payment = Payment(
            user_id=user.id,
            gateway_order_id="order_orphan",
            gateway_payment_id="pay_orphan",
            amount=9900,
            status=PaymentStatus.PAID,
            subscription_type=SubscriptionType.MONTHLY,
            subscription_start=NOW - timedelta(days=1),
            subscription_end=NOW + timedelta(days=29)
        )
        session.add(payment)
        await session.flush()
        return user.id, payment.id
    return run_db(create)

def load_user(run_db, user_id):
    async def work(session):
        return await session.get(User, user_id)
    return run_db(work)

class TestReconcileService:
    def test_finds_orphaned_payment(self, run_db, orphaned_payment):
        async def work(session):
            return [(payment.id, user.id) for payment, user in await find_subscription_anomalies(session, NOW)]

        user_id, payment_id = orphaned_payment
        assert run_db(work) == [(payment_id, user_id)]

    def test_expired_payments_are_ignored(self, run_db, orphaned_payment):
        async def work(session):
            return await find_subscription_anomalies(session, NOW + timedelta(days=60))

        assert run_db(work) == []

    def test_repair_is_idempotent(self, run_db, orphaned_payment):
        user_id, payment_id = orphaned_payment

        async def work(session):
            return await reconcile_subscriptions(session, NOW)

        repaired = run_db(work)
        assert [item["payment_id"] for item in repaired] == [payment_id]

        user = load_user(run_db, user_id)
        assert user.is_subscribed is True
        assert user.subscription_id == payment_id
        assert user.subscription_end == NOW + timedelta(days=29)

        assert run_db(work) == []

    def test_refunded_payments_are_not_anomalies(self, run_db, orphaned_payment):
        _, payment_id = orphaned_payment

        async def refund(session):
            await session.execute(
                update(Payment).where(Payment.id == payment_id).values(status=PaymentStatus.REFUNDED)
            )
        run_db(refund)

        async def work(session):
            return await reconcile_subscriptions(session, NOW)

        assert run_db(work) == []

class TestReconcileTask:
    def test_task_repairs_and_reports(self, run_db, session_factory, orphaned_payment, monkeypatch):
        @asynccontextmanager
        async def test_db_context():
            async with session_factory() as session:
                yield session
                await session.commit()

        monkeypatch.setattr(reconciliation_tasks, "get_db_context", test_db_context)
        monkeypatch.setattr(reconciliation_tasks, "utc_now", lambda: NOW)

        result = reconciliation_tasks.reconcile_subscriptions_task()

        user_id, payment_id = orphaned_payment
        assert result == {
            "success": True,
            "repaired": [{"payment_id": str(payment_id), "user_id": str(user_id)}]
        }
        assert load_user(run_db, user_id).is_subscribed is True

    def test_task_is_routed_to_payments_queue(self):
        task_name = reconciliation_tasks.reconcile_subscriptions_task.name
        assert celery_app.conf.task_routes[task_name] == {"queue": "payments"}
        assert celery_app.conf.beat_schedule["reconcile-subscriptions"]["task"] == task_name

class TestAdminReconcileEndpoints:
    def test_anomalies_then_repair(self, client, run_db, register, admin_headers):
        headers, user = register()
        order_id = client.post(
            f"{API}/payments/create-order",
            json={"subscriptionType": "monthly"},
            headers=headers
        ).json()["order"]["id"]

        # Paid on the gateway but the user row never got the window
        async def orphan(session):
            await session.execute(
                update(Payment)
                .where(Payment.gateway_order_id == order_id)
                .values(
                    status=PaymentStatus.PAID,
                    subscription_start=datetime.now(timezone.utc),
                    subscription_end=datetime.now(timezone.utc) + timedelta(days=30)
                )
            )
        run_db(orphan)

        anomalies = client.get(f"{API}/admin/subscriptions/anomalies", headers=admin_headers).json()
        assert anomalies["count"] == 1
        assert anomalies["anomalies"][0]["userId"] == user["id"]

        repaired = client.post(f"{API}/admin/subscriptions/reconcile", headers=admin_headers).json()
        assert repaired["repaired"] == 1

        me = client.get(f"{API}/auth/me", headers=headers).json()
        assert me["hasActiveSubscription"] is True

        again = client.post(f"{API}/admin/subscriptions/reconcile", headers=admin_headers).json()
        assert again["repaired"] == 0
        assert uuid.UUID(repaired["subscriptions"][0]["paymentId"])
