import copy

import pytest

from factoryflow.models import Material, MaterialLine, Order, Product, ProductLine
from factoryflow.pricing import (
    find_material, format_money, index_by_id, line_costs, lines_cost, order_cost, product_cost
)

STEEL = Material(id="m1", name="Steel", cost=2.5, unit="kg", stock=10, created_at="2024-05-01T00:00:00.000Z")
PAINT = Material(id="m2", name="Paint", cost=4.0, unit="l", stock=5, created_at="2024-05-01T00:00:00.000Z")
MATERIALS = index_by_id([STEEL, PAINT])

BRACKET = Product(id="p1", name="Bracket", materials=[MaterialLine("m1", 3)])
PANEL = Product(id="p2", name="Panel", materials=[MaterialLine("m1", 1), MaterialLine("m2", 0.5)])
PRODUCTS = index_by_id([BRACKET, PANEL])


def make_order(*lines):
    return Order(id="o1", order_number="ORD-1", products=[ProductLine(pid, qty) for pid, qty in lines])


def test_empty_product_costs_zero():
    assert product_cost(Product(id="p0", name="Empty"), MATERIALS) == 0


def test_product_cost_sums_material_lines():
    assert product_cost(BRACKET, MATERIALS) == pytest.approx(7.5)
    assert product_cost(PANEL, MATERIALS) == pytest.approx(4.5)


def test_missing_material_contributes_zero():
    product = Product(id="p3", name="Mixed", materials=[MaterialLine("m1", 2), MaterialLine("gone", 100)])
    assert product_cost(product, MATERIALS) == pytest.approx(5.0)


def test_bracket_order_scenario():
    # m1 a 2.50, produto com 3 x m1 = 7.50; pedido com 2 unidades = 15.00
    assert order_cost(make_order(("p1", 2)), PRODUCTS, MATERIALS) == pytest.approx(15.0)


def test_missing_product_contributes_zero():
    order = make_order(("p1", 1), ("deleted", 5))
    assert order_cost(order, PRODUCTS, MATERIALS) == pytest.approx(7.5)


def test_empty_order_costs_zero():
    assert order_cost(make_order(), PRODUCTS, MATERIALS) == 0


@pytest.mark.parametrize("k", [0, 1, 2, 7])
def test_order_cost_is_linear_in_line_quantity(k):
    single = order_cost(make_order(("p2", 1)), PRODUCTS, MATERIALS)
    assert order_cost(make_order(("p2", k)), PRODUCTS, MATERIALS) == pytest.approx(k * single)


def test_order_cost_adds_lines():
    order = make_order(("p1", 1), ("p2", 2))
    assert order_cost(order, PRODUCTS, MATERIALS) == pytest.approx(7.5 + 2 * 4.5)


def test_cost_does_not_mutate_inputs():
    order = make_order(("p1", 2))
    before = (copy.deepcopy(order), copy.deepcopy(PRODUCTS), copy.deepcopy(MATERIALS))
    order_cost(order, PRODUCTS, MATERIALS)
    assert (order, PRODUCTS, MATERIALS) == before


def test_no_rounding_applied():
    cheap = Material(id="m9", name="Rivet", cost=0.333, unit="pcs", stock=0, created_at="")
    product = Product(id="p9", name="Clip", materials=[MaterialLine("m9", 3)])
    assert product_cost(product, index_by_id([cheap])) == pytest.approx(0.999)


def test_line_costs_flags_missing_products():
    lines = [ProductLine("p1", 2), ProductLine("nope", 1)]
    breakdown = line_costs(lines, PRODUCTS, MATERIALS)
    assert [c.found for c in breakdown] == [True, False]
    assert breakdown[0].unit_cost == pytest.approx(7.5)
    assert breakdown[0].line_cost == pytest.approx(15.0)
    assert breakdown[1].line_cost == 0
    assert lines_cost(lines, PRODUCTS, MATERIALS) == pytest.approx(15.0)


def test_find_material_is_optional():
    assert find_material(MATERIALS, "m1") is STEEL
    assert find_material(MATERIALS, "missing") is None


def test_format_money():
    assert format_money(15) == "15.00"
    assert format_money(7.499) == "7.50"
