import hashlib
import hmac
import os
import time
import uuid
from datetime import date, timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ.pop("SMTP_HOST", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shared.core.auth import create_access_token
from shared.core.database import Base, get_contract_db
from shared.core.exceptions import UpstreamFailureError
from shared.core.schemas import UserToken
from shared.models.users import Users
from shared.utils.payment_gateway import ChargeIntent, StripeGateway, get_payment_gateway
from contract_service.app.main import app
from contract_service.app.crud import contracts_crud
from contract_service.app.models.properties import Property
from contract_service.app.schemas.contracts_schemas import ContractCreate

WEBHOOK_SECRET = "whsec_test"


def stripe_signature(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Build a Stripe-Signature header the way Stripe signs webhook deliveries."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeGateway(StripeGateway):
    """In-memory processor: hands out sequential intent ids, verifies webhooks like Stripe."""

    def __init__(self):
        super().__init__(secret_key=None, webhook_secret=WEBHOOK_SECRET)
        self.intents = []
        self.fail = False

    def create_charge_intent(self, amount, currency, metadata):
        if self.fail:
            raise UpstreamFailureError("Payment processor unavailable")
        intent_id = f"pi_test_{len(self.intents) + 1}"
        self.intents.append({"id": intent_id, "amount": amount,
                             "currency": currency, "metadata": dict(metadata)})
        return ChargeIntent(id=intent_id, client_secret=f"{intent_id}_secret")


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(db, gateway):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_contract_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ----------------- Factories -----------------

def make_user(db, account_type="tenant", full_name=None, email=None):
    user = Users(
        id=uuid.uuid4(),
        full_name=full_name or f"{account_type.title()} User",
        email=email,
        account_type=account_type,
        status="active",
    )
    db.add(user)
    db.commit()
    return user


def token_for(user) -> UserToken:
    return UserToken(user_id=str(user.id), name=user.full_name, account_type=user.account_type)


def auth_headers(user) -> dict:
    token = create_access_token({
        "user_id": str(user.id),
        "name": user.full_name,
        "account_type": user.account_type,
    })
    return {"Authorization": f"Bearer {token}"}


def make_property(db, landlord, **overrides):
    values = dict(
        id=uuid.uuid4(),
        landlord_id=landlord.id,
        title="Sunny two-bedroom",
        address="Calle Mayor 1, Madrid",
        city="Madrid",
        monthly_rent=120000,
        status="rented",
    )
    values.update(overrides)
    property_obj = Property(**values)
    db.add(property_obj)
    db.commit()
    return property_obj


def make_contract(db, landlord, tenant, property_obj, **overrides):
    start = date.today() + timedelta(days=30)
    values = dict(
        property_id=property_obj.id,
        tenant_id=tenant.id,
        start_date=start,
        end_date=start + timedelta(days=365),
        monthly_rent=120000,
        security_deposit=120000,
    )
    values.update(overrides)
    return contracts_crud.create_contract(db, ContractCreate(**values), token_for(landlord))


@pytest.fixture
def parties(db):
    landlord = make_user(db, "landlord", "Lucia Landlord")
    tenant = make_user(db, "tenant", "Tomas Tenant")
    property_obj = make_property(db, landlord)
    return landlord, tenant, property_obj


@pytest.fixture
def admin(db):
    return make_user(db, "admin", "Ada Admin")
