# pricing.py
# Cálculo de custos: pedido -> produto -> material
#
# Referências ausentes (material ou produto excluído) contribuem com 0
# e não geram erro, para que exclusões não quebrem pedidos existentes.
# Nenhum arredondamento é aplicado aqui; 2 casas decimais é assunto de exibição.

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, TypeVar

from factoryflow.models import Material, Order, Product, ProductLine

T = TypeVar("T", Material, Product)


def index_by_id(entities: Iterable[T]) -> Dict[str, T]:
    return {entity.id: entity for entity in entities}


def find_material(index: Mapping[str, Material], material_id: str) -> Optional[Material]:
    return index.get(material_id)


def find_product(index: Mapping[str, Product], product_id: str) -> Optional[Product]:
    return index.get(product_id)


def product_cost(product: Product, material_index: Mapping[str, Material]) -> float:
    """Soma custo unitário do material x quantidade para cada linha do produto"""
    total = 0.0
    for line in product.materials:
        material = find_material(material_index, line.material_id)
        if material is None:
            continue
        total += material.cost * line.quantity
    return total


def lines_cost(lines: Iterable[ProductLine],
               product_index: Mapping[str, Product],
               material_index: Mapping[str, Material]) -> float:
    total = 0.0
    for line in lines:
        product = find_product(product_index, line.product_id)
        if product is None:
            continue
        total += product_cost(product, material_index) * line.quantity
    return total


def order_cost(order: Order,
               product_index: Mapping[str, Product],
               material_index: Mapping[str, Material]) -> float:
    """Custo total do pedido: a quantidade da linha multiplica o custo inteiro do produto"""
    return lines_cost(order.products, product_index, material_index)


@dataclass
class LineCost:
    product_id: str
    quantity: int
    found: bool
    unit_cost: float
    line_cost: float

    def to_record(self) -> dict:
        return {
            "productId": self.product_id,
            "quantity": self.quantity,
            "found": self.found,
            "unitCost": self.unit_cost,
            "lineCost": self.line_cost,
        }


def line_costs(lines: Iterable[ProductLine],
               product_index: Mapping[str, Product],
               material_index: Mapping[str, Material]) -> List[LineCost]:
    """Detalhamento por linha (usado pelo orçamento de pedidos)"""
    result = []
    for line in lines:
        product = find_product(product_index, line.product_id)
        unit = product_cost(product, material_index) if product is not None else 0.0
        result.append(LineCost(line.product_id, line.quantity, product is not None, unit, unit * line.quantity))
    return result


def format_money(value: float) -> str:
    return f"{value:.2f}"
