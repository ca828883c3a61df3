# services.py
# Camada de serviços para regras de negócio

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from factoryflow.errors import NotFound, ValidationError
from factoryflow.models import (
    Material, Order, OrderStatus, Product, ProductLine, Role, User, new_id, now_iso
)
from factoryflow.pricing import index_by_id, line_costs, lines_cost, order_cost, product_cost
from factoryflow.session import Session
from factoryflow.store import Backend

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
SORT_ORDERS = ("asc", "desc")

# Painel
RECENT_ORDERS_LIMIT = 5
LOW_STOCK_THRESHOLD = 100
LOW_STOCK_LIMIT = 5


def validate_email(email: str) -> None:
    if "@" not in email:
        raise ValidationError("Informe um e-mail válido")


def validate_new_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"A senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres")


def _payload(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError("Corpo da requisição deve ser um objeto JSON")
    return data


def _managed_user(data: Any) -> Dict[str, Any]:
    """Cadastro/edição pelo admin: o perfil é obrigatório, sem valor padrão"""
    payload = dict(_payload(data))
    if not payload.get("role"):
        raise ValidationError('Campo "role" é obrigatório')
    return payload


def filter_and_sort(items: List[Any], query: Optional[str], text: Callable[[Any], str],
                    sort_by: Optional[str], order: Optional[str],
                    sort_keys: Dict[str, Callable[[Any], Any]]) -> List[Any]:
    """Busca por substring (sem diferenciar maiúsculas) e ordenação opcional"""
    result = list(items)
    if query:
        needle = query.lower()
        result = [item for item in result if needle in text(item).lower()]
    if sort_by:
        if sort_by not in sort_keys:
            raise ValidationError(f"Ordenação inválida: {sort_by}")
        order = order or "desc"
        if order not in SORT_ORDERS:
            raise ValidationError(f"Direção inválida: {order}")
        result.sort(key=sort_keys[sort_by], reverse=(order == "desc"))
    return result


class AuthService:
    def __init__(self, backend: Backend):
        self.backend = backend

    def authenticate(self, email: str, password: str) -> Optional[User]:
        # Comparação direta em texto puro (ver DESIGN.md)
        for user in self.backend.users.list():
            if user.email == email and user.password == password:
                logger.info("Login bem-sucedido: %s (Perfil: %s)", email, user.role.value)
                return user
        logger.warning("Login falhou para: %s", email)
        return None

    def signup(self, data: Any) -> User:
        payload = dict(_payload(data))
        payload["role"] = Role.EMPLOYEE.value
        payload["id"] = new_id()
        user = User.from_record(payload)
        validate_email(user.email)
        validate_new_password(user.password)
        return self.backend.users.create(user)


class UserService:
    def __init__(self, backend: Backend):
        self.backend = backend

    def list(self, session: Session) -> List[User]:
        session.require_admin()
        return self.backend.users.list()

    def create(self, session: Session, data: Any) -> User:
        session.require_admin()
        payload = _managed_user(data)
        payload["id"] = payload.get("id") or new_id()
        user = User.from_record(payload)
        validate_email(user.email)
        validate_new_password(user.password)
        return self.backend.users.create(user)

    def update(self, session: Session, user_id: str, data: Any) -> User:
        session.require_admin()
        existing = self.backend.users.get(user_id)
        if existing is None:
            raise NotFound(f"Usuário não encontrado: {user_id}")
        user = User.from_record(_managed_user(data))
        validate_email(user.email)
        # Senha vazia na edição mantém a atual
        if not user.password:
            user = replace(user, password=existing.password)
        return self.backend.users.update(user_id, user)

    def delete(self, session: Session, user_id: str) -> None:
        session.require_admin()
        session.guard_self_delete(user_id)
        self.backend.users.delete(user_id)


class MaterialService:
    def __init__(self, backend: Backend):
        self.backend = backend

    def list(self, session: Session, query: Optional[str] = None,
             sort_by: Optional[str] = None, order: Optional[str] = None) -> List[Material]:
        session.require_authenticated()
        return filter_and_sort(
            self.backend.materials.list(), query, lambda m: m.name, sort_by, order,
            {"name": lambda m: m.name.casefold(), "cost": lambda m: m.cost, "date": lambda m: m.created_at},
        )

    def create(self, session: Session, data: Any) -> Material:
        session.require_authenticated()
        material = Material.from_record(_payload(data))
        material = replace(material, id=material.id or new_id(), created_at=material.created_at or now_iso())
        return self.backend.materials.create(material)

    def update(self, session: Session, material_id: str, data: Any) -> Material:
        session.require_authenticated()
        material = Material.from_record(_payload(data))
        if not material.created_at:
            existing = self.backend.materials.get(material_id)
            if existing is None:
                raise NotFound(f"Material não encontrado: {material_id}")
            material = replace(material, created_at=existing.created_at)
        return self.backend.materials.update(material_id, material)

    def delete(self, session: Session, material_id: str) -> None:
        session.require_authenticated()
        self.backend.materials.delete(material_id)


class ProductService:
    def __init__(self, backend: Backend):
        self.backend = backend

    def list(self, session: Session, query: Optional[str] = None,
             sort_by: Optional[str] = None, order: Optional[str] = None) -> List[Product]:
        session.require_authenticated()
        materials = index_by_id(self.backend.materials.list())
        return filter_and_sort(
            self.backend.products.list(), query, lambda p: p.name, sort_by, order,
            {
                "name": lambda p: p.name.casefold(),
                "cost": lambda p: product_cost(p, materials),
                "date": lambda p: p.created_at,
            },
        )

    def _parse(self, data: Any) -> Product:
        product = Product.from_record(_payload(data))
        if not product.materials:
            raise ValidationError("Adicione pelo menos um material ao produto")
        return product

    def create(self, session: Session, data: Any) -> Product:
        session.require_authenticated()
        product = self._parse(data)
        product = replace(product, id=product.id or new_id(), created_at=product.created_at or now_iso())
        return self.backend.products.create(product)

    def update(self, session: Session, product_id: str, data: Any) -> Product:
        session.require_authenticated()
        product = self._parse(data)
        if not product.created_at:
            existing = self.backend.products.get(product_id)
            if existing is None:
                raise NotFound(f"Produto não encontrado: {product_id}")
            product = replace(product, created_at=existing.created_at)
        return self.backend.products.update(product_id, product)

    def delete(self, session: Session, product_id: str) -> None:
        session.require_authenticated()
        self.backend.products.delete(product_id)

    def cost(self, session: Session, product_id: str) -> float:
        """Custo atual do produto com os preços vigentes dos materiais"""
        session.require_authenticated()
        product = self.backend.products.get(product_id)
        if product is None:
            raise NotFound(f"Produto não encontrado: {product_id}")
        return product_cost(product, index_by_id(self.backend.materials.list()))


class OrderService:
    """
    Pedidos guardam `total_cost` como retrato do momento da gravação.

    O custo é recalculado com os preços vigentes somente em create/update;
    alterações posteriores nos materiais não mudam pedidos já gravados.
    """

    def __init__(self, backend: Backend):
        self.backend = backend

    def list(self, session: Session, query: Optional[str] = None,
             sort_by: Optional[str] = None, order: Optional[str] = None) -> List[Order]:
        session.require_authenticated()
        return filter_and_sort(
            self.backend.orders.list(), query, lambda o: o.order_number, sort_by, order,
            {
                "number": lambda o: o.order_number.casefold(),
                "cost": lambda o: o.total_cost,
                "date": lambda o: o.created_at,
            },
        )

    def _indexes(self):
        return index_by_id(self.backend.products.list()), index_by_id(self.backend.materials.list())

    def _parse(self, data: Any) -> Order:
        order = Order.from_record(_payload(data))
        if not order.products:
            raise ValidationError("Adicione pelo menos um produto ao pedido")
        return order

    @staticmethod
    def _completed_at(status: OrderStatus, previous: Optional[Order], timestamp: str) -> Optional[str]:
        if status is OrderStatus.COMPLETED:
            if previous is not None and previous.status is OrderStatus.COMPLETED and previous.completed_at:
                return previous.completed_at
            return timestamp
        if status in (OrderStatus.PENDING, OrderStatus.IN_PROGRESS):
            return previous.completed_at if previous is not None else None
        raise AssertionError(f"Status não tratado: {status}")

    def create(self, session: Session, data: Any) -> Order:
        session.require_authenticated()
        order = self._parse(data)
        products, materials = self._indexes()
        timestamp = now_iso()
        order = replace(
            order,
            id=order.id or new_id(),
            total_cost=order_cost(order, products, materials),
            created_at=order.created_at or timestamp,
            completed_at=self._completed_at(order.status, None, timestamp),
        )
        return self.backend.orders.create(order)

    def update(self, session: Session, order_id: str, data: Any) -> Order:
        session.require_authenticated()
        order = self._parse(data)
        existing = self.backend.orders.get(order_id)
        if existing is None:
            raise NotFound(f"Pedido não encontrado: {order_id}")
        products, materials = self._indexes()
        order = replace(
            order,
            total_cost=order_cost(order, products, materials),
            created_at=order.created_at or existing.created_at,
            completed_at=self._completed_at(order.status, existing, now_iso()),
        )
        return self.backend.orders.update(order_id, order)

    def advance(self, session: Session, order_id: str) -> Order:
        """Avança um passo no ciclo pending -> in-progress -> completed"""
        session.require_authenticated()
        existing = self.backend.orders.get(order_id)
        if existing is None:
            raise NotFound(f"Pedido não encontrado: {order_id}")
        status = existing.status.next()
        if status is None:
            raise ValidationError("Pedido já está concluído")
        # Só o status muda; o custo gravado é mantido
        order = replace(existing, status=status, completed_at=self._completed_at(status, existing, now_iso()))
        return self.backend.orders.update(order_id, order)

    def delete(self, session: Session, order_id: str) -> None:
        session.require_authenticated()
        self.backend.orders.delete(order_id)

    def quote(self, session: Session, data: Any) -> Dict[str, Any]:
        """Calcula o custo de um rascunho de pedido sem gravar nada"""
        session.require_authenticated()
        payload = _payload(data)
        raw_lines = payload.get("products", [])
        if not isinstance(raw_lines, list) or not all(isinstance(item, dict) for item in raw_lines):
            raise ValidationError('Campo "products" deve ser uma lista de itens')
        lines = [ProductLine.from_record(item) for item in raw_lines]
        products, materials = self._indexes()
        return {
            "totalCost": lines_cost(lines, products, materials),
            "lines": [line.to_record() for line in line_costs(lines, products, materials)],
        }


class DashboardService:
    def __init__(self, backend: Backend):
        self.backend = backend

    def stats(self, session: Session) -> Dict[str, Any]:
        session.require_authenticated()
        orders = self.backend.orders.list()
        materials = self.backend.materials.list()
        # Últimos pedidos gravados, do mais novo para o mais antigo
        recent = list(reversed(orders[-RECENT_ORDERS_LIMIT:]))
        low_stock = [m for m in materials if m.stock < LOW_STOCK_THRESHOLD][:LOW_STOCK_LIMIT]
        return {
            "totalOrders": len(orders),
            "pendingOrders": sum(1 for o in orders if o.status is OrderStatus.PENDING),
            "inProgressOrders": sum(1 for o in orders if o.status is OrderStatus.IN_PROGRESS),
            "totalProducts": len(self.backend.products.list()),
            "totalMaterials": len(materials),
            "totalRevenue": sum(o.total_cost for o in orders if o.status is OrderStatus.COMPLETED),
            "recentOrders": [o.to_record() for o in recent],
            "lowStockMaterials": [m.to_record() for m in low_stock],
        }
