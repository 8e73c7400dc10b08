import json
import os
import tempfile

# Must be set before storefront.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_storefront.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("MEDIA_ROOT", tempfile.mkdtemp(prefix="storefront-media-"))

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storefront.database import Base
from storefront.gateway import SyncPaymentsClient, get_gateway
from storefront.main import app as fastapi_app
from storefront.storage import LocalMediaStorage, get_storage

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_temp.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={
                       "check_same_thread": False})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)

GATEWAY_URL = "https://gateway.test"


class FakeSyncPayments:
    """Stands in for the vendor API behind an httpx.MockTransport."""

    def __init__(self):
        self.auth_status = 200
        self.create_status = 200
        self.create_body = {
            "paymentCode": "00020126580014br.gov.bcb.pix0136abc",
            "paymentCodeBase64": "iVBORw0KGgo=",
            "idTransaction": "tx_123",
            "status_transaction": "pending",
        }
        self.status_code = 200
        self.transaction_status = "pending"
        self.requests = []
        # path -> callable returning a raw httpx.Response
        self.overrides = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.overrides:
            return self.overrides[path]()
        if path == "/api/partner/v1/auth-token":
            if self.auth_status != 200:
                return httpx.Response(self.auth_status, text="invalid client")
            return httpx.Response(200, json={"access_token": "tok_abc"})
        if path == "/v1/gateway/api":
            return httpx.Response(self.create_status, json=self.create_body)
        if path.startswith("/api/partner/v1/transaction/"):
            if self.status_code != 200:
                return httpx.Response(self.status_code, text="not found")
            return httpx.Response(200, json={"data": {"status": self.transaction_status}})
        return httpx.Response(404)

    def paths(self):
        return [r.url.path for r in self.requests]

    def last_json(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def fake_gateway():
    return FakeSyncPayments()


@pytest.fixture
def gateway(fake_gateway):
    http = httpx.Client(transport=httpx.MockTransport(fake_gateway))
    client = SyncPaymentsClient("client-id", "client-secret", base_url=GATEWAY_URL, http=http)
    yield client
    http.close()


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def storage(tmp_path):
    return LocalMediaStorage(tmp_path, base_url="/media")


@pytest.fixture
def client(monkeypatch, gateway, storage):
    # Point every module that opens sessions at the test database
    monkeypatch.setattr("storefront.routes.SessionLocal", TestingSessionLocal)
    monkeypatch.setattr("storefront.admin.SessionLocal", TestingSessionLocal)
    monkeypatch.setattr("storefront.auth.SessionLocal", TestingSessionLocal)
    monkeypatch.setattr("storefront.main.SessionLocal", TestingSessionLocal)

    fastapi_app.dependency_overrides[get_gateway] = lambda: gateway
    fastapi_app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def verified_client(client):
    client.post("/age-verification", json={"confirmed": True})
    return client


@pytest.fixture
def session_factory():
    return TestingSessionLocal
