import os
from dataclasses import replace

import pytest

from factoryflow.database import DEFAULT_ADMIN, Database
from factoryflow.errors import DuplicateKey, NotFound, ValidationError
from factoryflow.models import Material, MaterialLine, Order, OrderStatus, ProductLine, Role, User
from factoryflow.store import LocalBackend


def make_user(user_id, email):
    return User(id=user_id, email=email, name="Test", surname="User", phone="", role=Role.MANAGER, password="secret1")


def make_material(material_id, name="Wood", cost=1.0):
    return Material(id=material_id, name=name, cost=cost, unit="m", stock=0, created_at="2024-01-01T00:00:00.000Z")


def test_default_admin_is_seeded(backend):
    users = backend.users.list()
    assert len(users) == 1
    assert users[0].email == DEFAULT_ADMIN["email"]
    assert users[0].role is Role.ADMIN


def test_admin_not_seeded_twice(db, tmp_path):
    again = Database(db.db_path)
    try:
        assert len(LocalBackend(again).users.list()) == 1
    finally:
        again.close()


def test_create_then_get_and_list_in_insertion_order(backend):
    for material_id in ("b", "a", "c"):
        backend.materials.create(make_material(material_id))
    assert [m.id for m in backend.materials.list()] == ["b", "a", "c"]
    assert backend.materials.get("a") == make_material("a")
    assert backend.materials.get("zzz") is None


def test_create_duplicate_id_is_rejected(backend):
    backend.materials.create(make_material("m1"))
    with pytest.raises(DuplicateKey):
        backend.materials.create(make_material("m1", name="Other"))
    assert [m.name for m in backend.materials.list()] == ["Wood"]


def test_create_without_id_is_rejected(backend):
    with pytest.raises(ValidationError):
        backend.materials.create(make_material(""))


def test_duplicate_email_leaves_store_unchanged(backend):
    before = backend.users.list()
    with pytest.raises(DuplicateKey):
        backend.users.create(make_user("u2", DEFAULT_ADMIN["email"]))
    assert backend.users.list() == before


def test_update_to_taken_email_is_rejected(backend):
    backend.users.create(make_user("u2", "second@company.com"))
    with pytest.raises(DuplicateKey):
        backend.users.update("u2", make_user("u2", DEFAULT_ADMIN["email"]))
    assert backend.users.get("u2").email == "second@company.com"


def test_update_keeps_own_email(backend):
    user = backend.users.create(make_user("u2", "second@company.com"))
    updated = backend.users.update("u2", replace(user, name="Renamed"))
    assert updated.name == "Renamed"


def test_update_round_trip_leaves_no_duplicates(backend):
    backend.materials.create(make_material("m1"))
    backend.materials.create(make_material("m2"))
    backend.materials.update("m1", make_material("m1", name="Oak", cost=3.0))
    materials = backend.materials.list()
    assert [m.id for m in materials] == ["m1", "m2"]
    assert backend.materials.get("m1").name == "Oak"
    assert backend.materials.get("m1").cost == 3.0


def test_update_uses_path_id(backend):
    backend.materials.create(make_material("m1"))
    updated = backend.materials.update("m1", make_material("other-id", name="Pine"))
    assert updated.id == "m1"
    assert backend.materials.get("other-id") is None


def test_update_missing_raises_not_found(backend):
    with pytest.raises(NotFound):
        backend.materials.update("ghost", make_material("ghost"))
    assert backend.materials.list() == []


def test_delete_missing_leaves_list_unchanged(backend):
    backend.materials.create(make_material("m1"))
    before = backend.materials.list()
    with pytest.raises(NotFound):
        backend.materials.delete("ghost")
    assert backend.materials.list() == before


def test_delete_removes_entity(backend):
    backend.materials.create(make_material("m1"))
    backend.materials.delete("m1")
    assert backend.materials.get("m1") is None


def test_product_lines_survive_storage(backend, bracket):
    stored = backend.products.get("p1")
    assert stored.materials == [MaterialLine("m1", 3.0)]
    assert stored.created_at == "2024-05-02T10:00:00.000Z"


def test_order_round_trip(backend):
    order = Order(
        id="o1",
        order_number="ORD-001",
        products=[ProductLine("p1", 2)],
        status=OrderStatus.IN_PROGRESS,
        total_cost=15.0,
        leftovers=[MaterialLine("m1", -0.5)],
        created_at="2024-05-03T09:00:00.000Z",
    )
    backend.orders.create(order)
    assert backend.orders.get("o1") == order
    assert "completedAt" not in backend.orders.get("o1").to_record()


def test_data_persists_after_reopen(db, backend):
    backend.materials.create(make_material("m1"))
    db.close()
    reopened = Database(db.db_path)
    try:
        assert LocalBackend(reopened).materials.get("m1") is not None
    finally:
        reopened.close()


def test_ping_and_integrity(backend, db):
    backend.ping()
    ok, message = db.verify_integrity()
    assert ok, message


def test_create_backup(db, tmp_path):
    path = db.create_backup(str(tmp_path / "bkp"))
    assert os.path.exists(path)
    copy = Database(path)
    try:
        assert len(LocalBackend(copy).users.list()) == 1
    finally:
        copy.close()
