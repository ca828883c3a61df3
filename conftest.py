"""
Fixtures compartilhadas dos testes
Cada teste recebe um banco SQLite novo em tmp_path
"""

import pytest

from factoryflow.database import DEFAULT_ADMIN, Database
from factoryflow.models import Material, MaterialLine, Product, Role, User
from factoryflow.session import Session
from factoryflow.store import LocalBackend
from factoryflow.web_server import WebServer


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "factoryflow.db"))
    yield database
    database.close()


@pytest.fixture
def backend(db):
    return LocalBackend(db)


@pytest.fixture
def admin(backend):
    return backend.users.get(DEFAULT_ADMIN["id"])


@pytest.fixture
def admin_session(admin):
    return Session.for_user(admin)


@pytest.fixture
def employee(backend):
    user = User(
        id="emp-1",
        email="worker@company.com",
        name="Ona",
        surname="Petraitė",
        phone="+370 600 11111",
        role=Role.EMPLOYEE,
        password="worker123",
    )
    return backend.users.create(user)


@pytest.fixture
def employee_session(employee):
    return Session.for_user(employee)


@pytest.fixture
def steel(backend):
    """Material m1: 2.50 por kg"""
    return backend.materials.create(
        Material(id="m1", name="Steel", cost=2.5, unit="kg", stock=100, created_at="2024-05-01T10:00:00.000Z")
    )


@pytest.fixture
def bracket(backend, steel):
    """Produto p1: 3 x m1 (custo 7.50)"""
    return backend.products.create(
        Product(id="p1", name="Bracket", materials=[MaterialLine("m1", 3)], created_at="2024-05-02T10:00:00.000Z")
    )


@pytest.fixture
def server(backend):
    return WebServer(backend, "test-secret-key")


@pytest.fixture
def client(server):
    return server.app.test_client()


@pytest.fixture
def admin_client(client):
    resp = client.post("/api/auth/login", json={"email": DEFAULT_ADMIN["email"], "password": DEFAULT_ADMIN["password"]})
    assert resp.status_code == 200
    return client
