from __future__ import annotations

import unittest
from dataclasses import dataclass
from typing import TYPE_CHECKING

import pytest

from bindscope import Container, Context, InvalidStructureError, inject


if TYPE_CHECKING:
    from decimal import Decimal


class Shape: ...


@dataclass
class Request:
    shape: Shape = inject("type")
    price: Decimal | None = None


@dataclass
class Checkout:
    shape: Shape = inject("type")
    price: Decimal = inject("type")


@dataclass
class Order:
    cart: Cart = inject()


class Cart: ...


class TestFillStringAnnotations(unittest.TestCase):
    def setUp(self):
        self.cont = Container()
        self.ctx = Context.background()
        self.cont.register_instance(Shape())

    def test_fill_ignores_unresolvable_annotation_of_plain_field(self):
        req = Request()
        self.cont.fill(self.ctx, req)

        assert isinstance(req.shape, Shape)
        assert req.price is None

    def test_fill_resolves_forward_reference(self):
        self.cont.register_singleton(Cart)

        order = Order()
        self.cont.fill(self.ctx, order)

        assert isinstance(order.cart, Cart)

    def test_fill_with_unresolvable_injected_annotation_raises(self):
        checkout = Checkout()

        with self.assertLogs("bindscope", level="WARNING") as logs:
            with pytest.raises(InvalidStructureError) as exc_info:
                self.cont.fill(self.ctx, checkout)

        assert "price" in str(exc_info.value)
        assert any("Decimal" in line for line in logs.output)
        assert checkout.shape is None
