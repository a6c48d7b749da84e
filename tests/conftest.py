"""Shared fixtures: per-test SQLite database, fake gateway and API helpers"""

import asyncio
import hashlib
import hmac
import json
import os
import tempfile
import uuid
from datetime import timedelta

# Settings are read once at import time
_DB_DIR = tempfile.mkdtemp(prefix="intrarefer-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'app.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "whsec_test"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from intrarefer.api.v1.payments.razorpay_client import get_payment_gateway
from intrarefer.core.config import settings
from intrarefer.core.database import get_db
from intrarefer.core.security import SecurityUtils
from intrarefer.main import app
from intrarefer.models import Base, User, UserRole
from intrarefer.utils.helpers import utc_now

API = "/api/v1"
PASSWORD = "secret123"

class FakeGateway:
    """Stands in for RazorpayClient; records calls and can be told to fail"""

    key_id = "rzp_test_key"

    def __init__(self):
        self.orders = []
        self.refunds = []
        self.error = None

    async def create_order(self, amount, currency="INR", receipt=None, notes=None):
        if self.error:
            raise self.error
        order = {
            "id": f"order_test{len(self.orders) + 1}",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {}
        }
        self.orders.append(order)
        return order

    async def create_refund(self, payment_id, amount=None, notes=None):
        if self.error:
            raise self.error
        refund = {
            "id": f"rfnd_test{len(self.refunds) + 1}",
            "payment_id": payment_id,
            "amount": amount,
            "notes": notes or {}
        }
        self.refunds.append(refund)
        return refund

@pytest.fixture
def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    asyncio.run(engine.dispose())

@pytest.fixture
def run_db(session_factory):
    """Run `work(session)` in its own committed transaction"""
    def run(work):
        async def go():
            async with session_factory() as session:
                result = await work(session)
                await session.commit()
                return result
        return asyncio.run(go())
    return run

@pytest.fixture
def gateway():
    return FakeGateway()

@pytest.fixture
def client(session_factory, gateway):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()

def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def register(client):
    """Register a user and return (headers, user json)"""
    counter = {"n": 0}

    def do_register(role="jobSeeker", name=None, email=None):
        counter["n"] += 1
        email = email or f"{role.lower()}{counter['n']}@example.com"
        response = client.post(f"{API}/auth/register", json={
            "name": name or f"{role.title()} {counter['n']}",
            "email": email,
            "password": PASSWORD,
            "role": role
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return auth_headers(body["token"]), body["user"]

    return do_register

@pytest.fixture
def admin_headers(client, run_db):
    async def create_admin(session):
        session.add(User(
            name="Site Admin",
            email="admin@example.com",
            password_hash=SecurityUtils.hash_password(PASSWORD),
            role=UserRole.ADMIN,
            skills=[],
            desired_roles=[]
        ))

    run_db(create_admin)
    response = client.post(f"{API}/auth/login", json={"email": "admin@example.com", "password": PASSWORD})
    assert response.status_code == 200, response.text
    return auth_headers(response.json()["token"])

@pytest.fixture
def subscribe(run_db):
    """Give a user an active subscription directly in the database"""
    def do_subscribe(user_id, days=30):
        now = utc_now()

        async def work(session):
            await session.execute(
                update(User)
                .where(User.id == uuid.UUID(user_id))
                .values(is_subscribed=True, subscription_start=now, subscription_end=now + timedelta(days=days))
            )
        run_db(work)
    return do_subscribe

def referral_payload(**overrides):
    payload = {
        "title": "Backend Engineer",
        "company": "Acme Corp",
        "location": "Bengaluru",
        "jobType": "full-time",
        "experienceLevel": "mid",
        "description": "Build and run our APIs.",
        "requirements": ["3+ years of Python"],
        "skills": ["react", "node"],
        "salaryRange": {"min": 1000000, "max": 2000000, "currency": "INR"},
        "applicationDeadline": (utc_now() + timedelta(days=14)).isoformat(),
        "workMode": "hybrid"
    }
    payload.update(overrides)
    return payload

@pytest.fixture
def create_referral(client):
    def do_create(headers, **overrides):
        response = client.post(f"{API}/referrals", json=referral_payload(**overrides), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["referral"]
    return do_create

def sign(message: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()

def checkout_signature(order_id: str, payment_id: str) -> str:
    return sign(f"{order_id}|{payment_id}".encode("utf-8"), settings.RAZORPAY_KEY_SECRET)

def webhook_request(event: str, entity_key: str, entity: dict):
    """Body and signature header for a gateway webhook"""
    body = json.dumps({"event": event, "payload": {entity_key: {"entity": entity}}}).encode("utf-8")
    return body, {"X-Razorpay-Signature": sign(body, settings.webhook_secret), "Content-Type": "application/json"}
