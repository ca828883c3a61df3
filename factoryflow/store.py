# store.py
# Contrato de armazenamento (list/get/create/update/delete) e implementação SQLite

import json
import sqlite3
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from factoryflow.database import Database
from factoryflow.errors import BackendUnavailable, DuplicateKey, NotFound, ValidationError
from factoryflow.models import (
    Material, MaterialLine, Order, OrderStatus, Product, ProductLine, Role, User
)

logger = logging.getLogger(__name__)

E = TypeVar("E", User, Material, Product, Order)


class EntityStore(ABC, Generic[E]):
    """
    Coleção de entidades endereçadas por um identificador opaco.

    Cada operação de escrita é persistida imediatamente. Conflitos de
    escrita concorrente seguem "última escrita vence".
    """
    entity_name = "Entidade"

    @abstractmethod
    def list(self) -> List[E]:
        """Todas as entidades, em ordem de inserção"""

    @abstractmethod
    def get(self, entity_id: str) -> Optional[E]:
        """Busca opcional: None quando o id não existe"""

    @abstractmethod
    def create(self, entity: E) -> E:
        """Insere; DuplicateKey se o id (ou e-mail, para usuários) já existir"""

    @abstractmethod
    def update(self, entity_id: str, entity: E) -> E:
        """Substitui a entidade em `entity_id`; NotFound se não existir"""

    @abstractmethod
    def delete(self, entity_id: str) -> None:
        """Remove; NotFound se não existir"""

    def not_found(self, entity_id: str) -> NotFound:
        return NotFound(f"{self.entity_name} não encontrado(a): {entity_id}")


class SqliteEntityStore(EntityStore[E]):
    table = ""
    columns: Tuple[str, ...] = ()

    def __init__(self, db: Database):
        self.db = db

    # Conversão linha <-> entidade, definida por subclasse
    def _to_row(self, entity: E) -> Dict[str, Any]:
        raise NotImplementedError

    def _from_row(self, row: sqlite3.Row) -> E:
        raise NotImplementedError

    def _check_unique(self, entity: E, exclude_id: Optional[str] = None) -> None:
        """Restrições de unicidade além do id (ex.: e-mail)"""

    def list(self) -> List[E]:
        rows = self.db.query(f"SELECT * FROM {self.table} ORDER BY rowid")
        return [self._from_row(row) for row in rows]

    def get(self, entity_id: str) -> Optional[E]:
        row = self.db.query_one(f"SELECT * FROM {self.table} WHERE id = ?", (entity_id,))
        return self._from_row(row) if row else None

    def create(self, entity: E) -> E:
        if not entity.id:
            raise ValidationError(f"{self.entity_name} sem identificador")
        if self.get(entity.id) is not None:
            raise DuplicateKey(f"{self.entity_name} já existe: {entity.id}")
        self._check_unique(entity)

        names = ", ".join(self.columns)
        placeholders = ", ".join(f":{c}" for c in self.columns)
        try:
            self.db.execute(f"INSERT INTO {self.table} ({names}) VALUES ({placeholders})", self._to_row(entity))
        except sqlite3.IntegrityError as e:
            raise DuplicateKey(f"{self.entity_name} duplicado(a): {e}")
        logger.info("%s criado(a): %s", self.entity_name, entity.id)
        return entity

    def update(self, entity_id: str, entity: E) -> E:
        # O id da rota sempre prevalece sobre o id do payload
        entity = replace(entity, id=entity_id)
        if self.get(entity_id) is None:
            raise self.not_found(entity_id)
        self._check_unique(entity, exclude_id=entity_id)

        assignments = ", ".join(f"{c} = :{c}" for c in self.columns if c != "id")
        try:
            cur = self.db.execute(f"UPDATE {self.table} SET {assignments} WHERE id = :id", self._to_row(entity))
        except sqlite3.IntegrityError as e:
            raise DuplicateKey(f"{self.entity_name} duplicado(a): {e}")
        if cur.rowcount == 0:
            raise self.not_found(entity_id)
        logger.info("%s atualizado(a): %s", self.entity_name, entity_id)
        return entity

    def delete(self, entity_id: str) -> None:
        cur = self.db.execute(f"DELETE FROM {self.table} WHERE id = ?", (entity_id,))
        if cur.rowcount == 0:
            raise self.not_found(entity_id)
        logger.info("%s excluído(a): %s", self.entity_name, entity_id)


def _dump_lines(lines) -> str:
    return json.dumps([line.to_record() for line in lines])


def _load_json(value: Optional[str]) -> List[Dict[str, Any]]:
    if not value:
        return []
    return json.loads(value)


class UserStore(SqliteEntityStore[User]):
    entity_name = "Usuário"
    table = "users"
    columns = ("id", "email", "name", "surname", "phone", "role", "password")

    def _to_row(self, entity: User) -> Dict[str, Any]:
        return entity.to_record()

    def _from_row(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            surname=row["surname"],
            phone=row["phone"],
            role=Role(row["role"]),
            password=row["password"],
        )

    def _check_unique(self, entity: User, exclude_id: Optional[str] = None) -> None:
        row = self.db.query_one(
            "SELECT id FROM users WHERE email = ? AND id != ?", (entity.email, exclude_id or "")
        )
        if row is not None:
            raise DuplicateKey(f"E-mail já cadastrado: {entity.email}")


class MaterialStore(SqliteEntityStore[Material]):
    entity_name = "Material"
    table = "materials"
    columns = ("id", "name", "cost", "unit", "stock", "created_at")

    def _to_row(self, entity: Material) -> Dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "cost": entity.cost,
            "unit": entity.unit,
            "stock": entity.stock,
            "created_at": entity.created_at,
        }

    def _from_row(self, row: sqlite3.Row) -> Material:
        return Material(
            id=row["id"],
            name=row["name"],
            cost=float(row["cost"]),
            unit=row["unit"],
            stock=float(row["stock"]),
            created_at=row["created_at"],
        )


class ProductStore(SqliteEntityStore[Product]):
    entity_name = "Produto"
    table = "products"
    columns = ("id", "name", "materials", "created_at")

    def _to_row(self, entity: Product) -> Dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "materials": _dump_lines(entity.materials),
            "created_at": entity.created_at,
        }

    def _from_row(self, row: sqlite3.Row) -> Product:
        return Product(
            id=row["id"],
            name=row["name"],
            materials=[MaterialLine(m["materialId"], float(m["quantity"])) for m in _load_json(row["materials"])],
            created_at=row["created_at"],
        )


class OrderStore(SqliteEntityStore[Order]):
    entity_name = "Pedido"
    table = "orders"
    columns = ("id", "order_number", "products", "status", "total_cost", "leftovers", "created_at", "completed_at")

    def _to_row(self, entity: Order) -> Dict[str, Any]:
        return {
            "id": entity.id,
            "order_number": entity.order_number,
            "products": _dump_lines(entity.products),
            "status": entity.status.value,
            "total_cost": entity.total_cost,
            "leftovers": _dump_lines(entity.leftovers),
            "created_at": entity.created_at,
            "completed_at": entity.completed_at,
        }

    def _from_row(self, row: sqlite3.Row) -> Order:
        return Order(
            id=row["id"],
            order_number=row["order_number"],
            products=[ProductLine(p["productId"], int(p["quantity"])) for p in _load_json(row["products"])],
            status=OrderStatus(row["status"]),
            total_cost=float(row["total_cost"]),
            leftovers=[MaterialLine(m["materialId"], float(m["quantity"])) for m in _load_json(row["leftovers"])],
            created_at=row["created_at"],
            completed_at=row["completed_at"],
        )


class Backend(ABC):
    """Conjunto das quatro coleções sobre um meio de persistência"""
    users: EntityStore[User]
    materials: EntityStore[Material]
    products: EntityStore[Product]
    orders: EntityStore[Order]

    @abstractmethod
    def ping(self) -> None:
        """Levanta BackendUnavailable se o meio de persistência não responder"""

    def close(self) -> None:
        pass


class LocalBackend(Backend):
    def __init__(self, db: Database):
        self.db = db
        self.users = UserStore(db)
        self.materials = MaterialStore(db)
        self.products = ProductStore(db)
        self.orders = OrderStore(db)

    def ping(self) -> None:
        ok, message = self.db.verify_integrity()
        if not ok:
            raise BackendUnavailable(message)

    def close(self) -> None:
        self.db.close()

    def __repr__(self):
        return f"LocalBackend({self.db.db_path})"
