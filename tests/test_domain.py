from datetime import datetime, timezone
from decimal import Decimal

import pytest

from storefront.domain.models import (
    Cart, CartLine, Order, OrderLine, OrderStatus, Product, ShippingAddress, StatusEntry, User,
    transition_allowed, is_valid_email, has_cent_precision,
)

NOW = datetime(2026, 10, 17, tzinfo=timezone.utc)


def _order(status=OrderStatus.PENDING, user_id="u1"):
    return Order(
        id="o1",
        order_number="ORD1",
        user_id=user_id,
        items=[OrderLine(product_id="p1", name="Apples", price=Decimal("100"), quantity=2)],
        total_price=Decimal("200"),
        shipping_address=ShippingAddress(
            first_name="A", last_name="B", email="a@b.co", phone="1", address="x", city="y", state="z", zip_code="0"
        ),
        status_history=[StatusEntry(status=status, timestamp=NOW)],
        current_status=status,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.mark.parametrize("current", list(OrderStatus))
@pytest.mark.parametrize("requested", list(OrderStatus))
def test_permissive_transitions_accept_everything(current, requested):
    assert transition_allowed(current, requested)


@pytest.mark.parametrize(
    "current,requested,allowed",
    [
        (OrderStatus.PENDING, OrderStatus.PROCESSING, True),
        (OrderStatus.PENDING, OrderStatus.DELIVERED, True),
        (OrderStatus.SHIPPED, OrderStatus.PROCESSING, False),
        (OrderStatus.SHIPPED, OrderStatus.CANCELLED, True),
        (OrderStatus.CANCELLED, OrderStatus.CANCELLED, True),
        (OrderStatus.CANCELLED, OrderStatus.PENDING, False),
        (OrderStatus.DELIVERED, OrderStatus.CANCELLED, False),
        (OrderStatus.DELIVERED, OrderStatus.PENDING, False),
    ],
)
def test_strict_transitions(current, requested, allowed):
    assert transition_allowed(current, requested, strict=True) is allowed


def test_order_visibility_and_deletion():
    owner = User(id="u1", name="Owner", email="o@example.com")
    stranger = User(id="u2", name="Stranger", email="s@example.com")
    admin = User(id="u3", name="Admin", email="a@example.com", is_admin=True)
    order = _order()

    assert order.can_be_viewed_by(owner)
    assert not order.can_be_viewed_by(stranger)
    assert order.can_be_viewed_by(admin)
    assert not order.can_be_deleted()
    assert _order(OrderStatus.CANCELLED).can_be_deleted()
    assert order.items[0].line_total == Decimal("200")


def test_cart_totals():
    product = Product(id="p1", name="Apples", price=Decimal("12.50"), category="Fruits", stock=1,
                      created_at=NOW, updated_at=NOW)
    cart = Cart(id="c1", user_id="u1", items=[CartLine(product=product, quantity=4)])

    assert cart.item_count == 4
    assert cart.subtotal == Decimal("50.00")
    assert not cart.is_empty()


@pytest.mark.parametrize(
    "is_admin,is_active,deletable",
    [(False, False, True), (False, True, False), (True, False, False), (True, True, False)],
)
def test_user_deletion_rule(is_admin, is_active, deletable):
    user = User(id="u1", name="Asha", email="asha@example.com", is_admin=is_admin, is_active=is_active)
    assert user.can_be_deleted() is deletable


@pytest.mark.parametrize(
    "value,valid",
    [
        ("asha@example.com", True),
        ("asha.rao+orders@mail.example.in", True),
        ("asha@example..com", False),
        ("asha@", False),
        ("not-an-email", False),
    ],
)
def test_email_check(value, valid):
    assert is_valid_email(value) is valid


@pytest.mark.parametrize(
    "amount,ok",
    [("10", True), ("10.5", True), ("10.50", True), ("10.500", True), ("10.505", False), ("0.001", False)],
)
def test_cent_precision(amount, ok):
    assert has_cent_precision(Decimal(amount)) is ok
