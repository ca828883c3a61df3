# models.py
# Definições de dataclasses e modelos de domínio

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from factoryflow.errors import ValidationError


class Role(Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class OrderStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    def next(self) -> Optional["OrderStatus"]:
        """Próximo estado do ciclo pending -> in-progress -> completed"""
        if self is OrderStatus.PENDING:
            return OrderStatus.IN_PROGRESS
        if self is OrderStatus.IN_PROGRESS:
            return OrderStatus.COMPLETED
        return None


def new_id() -> str:
    return str(uuid.uuid4())


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------- Conversores de entrada ----------

def _text(data: Dict[str, Any], key: str, required: bool = True) -> str:
    value = data.get(key)
    if value is None:
        if required:
            raise ValidationError(f'Campo "{key}" é obrigatório')
        return ""
    if not isinstance(value, str):
        raise ValidationError(f'Campo "{key}" deve ser texto')
    value = value.strip()
    if required and not value:
        raise ValidationError(f'Campo "{key}" não pode ser vazio')
    return value


def _number(value: Any, label: str, allow_negative: bool = False) -> float:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f'Campo "{label}" deve ser numérico')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Campo "{label}" deve ser numérico')
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f'Campo "{label}" deve ser numérico')
    if number < 0 and not allow_negative:
        raise ValidationError(f'Campo "{label}" não pode ser negativo')
    return number


def _count(value: Any, label: str) -> int:
    number = _number(value, label)
    if not number.is_integer():
        raise ValidationError(f'Campo "{label}" deve ser um número inteiro')
    return int(number)


def _lines(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    value = data.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ValidationError(f'Campo "{key}" deve ser uma lista de itens')
    return value


def _optional_text(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValidationError(f'Campo "{key}" deve ser texto')
    return value


# ---------- Entidades ----------

@dataclass
class User:
    id: str
    email: str
    name: str
    surname: str
    phone: str
    role: Role
    # Senha em texto puro, compatível com os dados existentes (ver DESIGN.md)
    password: str

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "surname": self.surname,
            "phone": self.phone,
            "role": self.role.value,
            "password": self.password,
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "User":
        try:
            role = Role(data.get("role", Role.EMPLOYEE.value))
        except ValueError:
            raise ValidationError(f"Perfil inválido: {data.get('role')}")
        password = data.get("password") or ""
        if not isinstance(password, str):
            raise ValidationError('Campo "password" deve ser texto')
        return cls(
            id=str(data.get("id") or ""),
            email=_text(data, "email"),
            name=_text(data, "name"),
            surname=_text(data, "surname", required=False),
            phone=_text(data, "phone", required=False),
            role=role,
            password=password,
        )


@dataclass
class Material:
    id: str
    name: str
    cost: float
    unit: str
    stock: float
    created_at: str

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "cost": self.cost,
            "unit": self.unit,
            "stock": self.stock,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Material":
        return cls(
            id=str(data.get("id") or ""),
            name=_text(data, "name"),
            cost=_number(data.get("cost"), "cost"),
            unit=_text(data, "unit"),
            stock=_number(data.get("stock", 0), "stock"),
            created_at=_text(data, "createdAt", required=False),
        )


@dataclass
class MaterialLine:
    material_id: str
    quantity: float

    def to_record(self) -> Dict[str, Any]:
        return {"materialId": self.material_id, "quantity": self.quantity}

    @classmethod
    def from_record(cls, data: Dict[str, Any], allow_negative: bool = False) -> "MaterialLine":
        return cls(
            material_id=_text(data, "materialId"),
            quantity=_number(data.get("quantity"), "quantity", allow_negative=allow_negative),
        )


@dataclass
class Product:
    id: str
    name: str
    materials: List[MaterialLine] = field(default_factory=list)
    created_at: str = ""

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "materials": [line.to_record() for line in self.materials],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Product":
        return cls(
            id=str(data.get("id") or ""),
            name=_text(data, "name"),
            materials=[MaterialLine.from_record(item) for item in _lines(data, "materials")],
            created_at=_text(data, "createdAt", required=False),
        )


@dataclass
class ProductLine:
    product_id: str
    quantity: int

    def to_record(self) -> Dict[str, Any]:
        return {"productId": self.product_id, "quantity": self.quantity}

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "ProductLine":
        return cls(
            product_id=_text(data, "productId"),
            quantity=_count(data.get("quantity"), "quantity"),
        )


@dataclass
class Order:
    id: str
    order_number: str
    products: List[ProductLine] = field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    total_cost: float = 0.0
    leftovers: List[MaterialLine] = field(default_factory=list)
    created_at: str = ""
    completed_at: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        record = {
            "id": self.id,
            "orderNumber": self.order_number,
            "products": [line.to_record() for line in self.products],
            "status": self.status.value,
            "totalCost": self.total_cost,
            "leftovers": [line.to_record() for line in self.leftovers],
            "createdAt": self.created_at,
        }
        if self.completed_at:
            record["completedAt"] = self.completed_at
        return record

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Order":
        try:
            status = OrderStatus(data.get("status", OrderStatus.PENDING.value))
        except ValueError:
            raise ValidationError(f"Status inválido: {data.get('status')}")
        return cls(
            id=str(data.get("id") or ""),
            order_number=_text(data, "orderNumber"),
            products=[ProductLine.from_record(item) for item in _lines(data, "products")],
            status=status,
            total_cost=_number(data.get("totalCost", 0), "totalCost"),
            leftovers=[MaterialLine.from_record(item, allow_negative=True) for item in _lines(data, "leftovers")],
            created_at=_text(data, "createdAt", required=False),
            completed_at=_optional_text(data, "completedAt"),
        )
