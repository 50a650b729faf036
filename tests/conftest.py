# tests/conftest.py

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from uuid import uuid4

# the settings are read when mutual_help.main is imported, so the environment comes first
_TMP_DIR = tempfile.mkdtemp(prefix="mutual_help_tests_")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/test.db")
os.environ.setdefault("CREATE_SCHEMA_ON_STARTUP", "true")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BOOTSTRAP_ADMIN_EMAIL", "admin@example.com")
os.environ.setdefault("BOOTSTRAP_ADMIN_PASSWORD", "admin_pass_123")
os.environ.setdefault("BUCKET_NAME", "test-bucket")
os.environ.setdefault("BUCKET_ACCKEY", "test-access-key")
os.environ.setdefault("BUCKET_SECKEY", "test-secret-key")

import httpx  # noqa: E402
import pytest  # noqa: E402
from asgi_lifespan import LifespanManager  # noqa: E402

from mutual_help.main import app  # noqa: E402

ADMIN_EMAIL = os.environ["BOOTSTRAP_ADMIN_EMAIL"]
ADMIN_PASSWORD = os.environ["BOOTSTRAP_ADMIN_PASSWORD"]


@pytest.fixture
def anyio_backend():
    # aiosqlite runs on asyncio only
    return "asyncio"


@dataclass(frozen=True)
class TestUser:
    id: str
    email: str
    password: str
    firstname: str
    user_type: str
    token: str


def _uniq(base: str) -> str:
    # alice -> alice_1a2b3c4d@example.com
    return f"{base}_{uuid4().hex[:8]}@example.com"


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def login(client: httpx.AsyncClient, email: str, password: str) -> str:
    r = await client.post("/api/users/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


async def create_user_and_token(
    client: httpx.AsyncClient,
    *,
    firstname: str,
    password: str,
) -> TestUser:
    payload = {
        "firstname": firstname.capitalize(),
        "lastname": "Tester",
        "email": _uniq(firstname),
        "password": password,
    }
    r = await client.post("/api/users/register", json=payload)
    assert r.status_code == 201, r.text
    token = r.json()["token"]

    r = await client.get("/api/users/self", headers=auth_headers(token))
    assert r.status_code == 200, r.text
    data = r.json()
    return TestUser(
        id=data["id"],
        email=payload["email"],
        password=password,
        firstname=payload["firstname"],
        user_type=data["user_type"],
        token=token,
    )


def _auth_client(client: httpx.AsyncClient, token: str) -> httpx.AsyncClient:
    # a separate client so the shared one never carries an Authorization header
    return httpx.AsyncClient(
        transport=client._transport,
        base_url=str(client.base_url),
        headers=auth_headers(token),
    )


@pytest.fixture
async def client():
    async with LifespanManager(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


@pytest.fixture
async def user_a(client) -> TestUser:
    return await create_user_and_token(client, firstname="alice", password="alice_pass_123")


@pytest.fixture
async def user_b(client) -> TestUser:
    return await create_user_and_token(client, firstname="bob", password="bob_pass_123")


@pytest.fixture
async def admin_token(client) -> str:
    return await login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
async def auth_client_a(client, user_a: TestUser):
    async with _auth_client(client, user_a.token) as c:
        yield c


@pytest.fixture
async def auth_client_b(client, user_b: TestUser):
    async with _auth_client(client, user_b.token) as c:
        yield c


@pytest.fixture
async def admin_client(client, admin_token: str):
    async with _auth_client(client, admin_token) as c:
        yield c


@pytest.fixture
async def geo(auth_client_a) -> dict:
    """A country with two departments (the second inside the first's perimeter) and one city in each."""
    r = await auth_client_a.post("/api/countries", json={"country": "France"})
    assert r.status_code == 201, r.text
    country_id = r.json()["id"]

    departments = []
    for number, name in ((75, "Paris"), (92, "Hauts-de-Seine")):
        r = await auth_client_a.post(
            "/api/departments",
            json={"department_number": number, "department_name": name, "country_id": country_id},
        )
        assert r.status_code == 201, r.text
        departments.append(r.json()["id"])

    r = await auth_client_a.post(f"/api/departments/{departments[0]}/perimeter/{departments[1]}")
    assert r.status_code == 201, r.text

    cities = []
    for name, department_id in ((f"Paris-{uuid4().hex[:6]}", departments[0]), (f"Nanterre-{uuid4().hex[:6]}", departments[1])):
        r = await auth_client_a.post("/api/cities", json={"city": name, "department_id": department_id})
        assert r.status_code == 201, r.text
        cities.append(r.json()["id"])

    return {"country_id": country_id, "departments": departments, "cities": cities}


@pytest.fixture(autouse=True)
def no_bucket_deletes(monkeypatch):
    # ad and user deletion remove objects from the bucket; record the names instead
    deleted: list[str] = []
    monkeypatch.setattr("mutual_help.storage.delete_image", deleted.append)
    return deleted
