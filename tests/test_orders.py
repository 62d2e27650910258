"""
Back Office order tests

Tests:
  1. Pricing of a new order (SKU-1 x2 at 10.00 -> 34.00)
  2. Stock check at creation: insufficient stock leaves nothing behind
  3. Status machine: forward-only, single completion, cancellation
  4. Completion: stock adjusted in-transaction, loyalty credited exactly once
  5. Strict vs lenient stock adjustment
  6. PayPal checkout and capture with invoice mail
  7. Concurrent completion of the same order is applied once
  8. Daily order revenue analytics
"""
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from backoffice.core.exceptions import InvalidOperation, NotFound
from backoffice.core.security import Identity
from backoffice.events.order_completed import OrderCompletedPipeline
from backoffice.models.common import LifecycleStatus
from backoffice.models.inventory import MovementReason, Product, StockMovement
from backoffice.models.loyalty import UserLoyalty
from backoffice.models.order import Order, OrderStatus
from backoffice.schemas.order import OrderCreateRequest
from backoffice.services.audit_service import AuditService
from backoffice.services.order_service import OrderService, default_cancel_reason
from backoffice.services.stock_service import LENIENT, STRICT
from conftest import add_product, add_user, bearer

FORWARD = ["CONFIRMED", "PREPARING", "READY_FOR_PICKUP", "COMPLETED"]


async def place_order(client, headers, product_id, quantity=2, payment_method="CASH_ON_DELIVERY"):
    r = await client.post(
        "/api/orders",
        json={"items": [{"product_id": product_id, "quantity": quantity}], "payment_method": payment_method},
        headers=headers,
    )
    assert r.status_code == 201, f"Order creation failed: {r.text}"
    return r.json()


async def move(client, order_id, status, headers):
    return await client.patch(f"/api/orders/{order_id}/status", json={"status": status}, headers=headers)


async def stock_of(session_factory, product_id):
    async with session_factory() as session:
        return (await session.get(Product, product_id)).stock_quantity


async def loyalty_of(session_factory, username):
    async with session_factory() as session:
        return await session.scalar(select(UserLoyalty).where(UserLoyalty.customer_username == username))


# ─── Creation ──────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_order_is_priced_and_left_pending(client, db, session_factory, customer_headers):
    await add_user(db, "alice")
    product = await add_product(db, sku="SKU-1", selling_price="10.00", stock=3)

    order = await place_order(client, customer_headers, product.id, quantity=2)

    assert order["status"] == "PENDING"
    assert order["payment_status"] == "PENDING"
    assert order["order_number"].startswith("ORD-")
    assert order["customer_username"] == "alice"
    assert order["customer_email"] == "alice@example.com"
    assert Decimal(order["subtotal"]) == Decimal("20.00")
    assert Decimal(order["tax"]) == Decimal("4.00")
    assert Decimal(order["shipping"]) == Decimal("10.00")
    assert Decimal(order["total"]) == Decimal("34.00")
    assert order["items"][0]["product_name"] == "Widget"
    assert Decimal(order["items"][0]["line_total"]) == Decimal("20.00")
    # Stock is only taken at completion.
    assert await stock_of(session_factory, product.id) == 3


@pytest.mark.asyncio
async def test_promotion_price_is_used(client, db, customer_headers):
    product = await add_product(db, selling_price="10.00", is_on_promotion=True, promotion_price=Decimal("8.00"))
    order = await place_order(client, customer_headers, product.id, quantity=1)
    assert Decimal(order["items"][0]["unit_price"]) == Decimal("8.00")


@pytest.mark.asyncio
async def test_insufficient_stock_creates_nothing(client, db, session_factory, customer_headers):
    product = await add_product(db, sku="SKU-1", stock=1)

    r = await client.post(
        "/api/orders",
        json={"items": [{"product_id": product.id, "quantity": 2}], "payment_method": "CASH_ON_DELIVERY"},
        headers=customer_headers,
    )

    assert r.status_code == 400, f"Expected 400, got {r.status_code}: {r.text}"
    assert "Widget" in r.json()["message"]
    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(Order)) == 0
    assert await stock_of(session_factory, product.id) == 1


@pytest.mark.asyncio
async def test_quantities_for_the_same_product_are_combined(client, db, customer_headers):
    product = await add_product(db, stock=3)
    r = await client.post(
        "/api/orders",
        json={"items": [{"product_id": product.id, "quantity": 2}, {"product_id": product.id, "quantity": 2}],
              "payment_method": "CASH_ON_DELIVERY"},
        headers=customer_headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_unknown_product_is_404(client, customer_headers):
    r = await client.post(
        "/api/orders",
        json={"items": [{"product_id": "missing", "quantity": 1}], "payment_method": "CASH_ON_DELIVERY"},
        headers=customer_headers,
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_archived_product_cannot_be_ordered(client, db, customer_headers):
    product = await add_product(db, status=LifecycleStatus.ARCHIVED)
    r = await client.post(
        "/api/orders",
        json={"items": [{"product_id": product.id, "quantity": 1}], "payment_method": "CASH_ON_DELIVERY"},
        headers=customer_headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_anonymous_caller_cannot_order(client, db):
    product = await add_product(db)
    r = await client.post("/api/orders", json={"items": [{"product_id": product.id, "quantity": 1}]})
    assert r.status_code == 403


# ─── Status machine & completion ───────────────────────────────────────────────
@pytest.mark.asyncio
async def test_completion_adjusts_stock_and_credits_loyalty_once(
    client, db, session_factory, customer_headers, employee_headers
):
    await add_user(db, "alice")
    product = await add_product(db, sku="SKU-1", selling_price="10.00", stock=3)
    order = await place_order(client, customer_headers, product.id, quantity=2)

    for status in FORWARD:
        r = await move(client, order["id"], status, employee_headers)
        assert r.status_code == 200, f"{status} failed: {r.text}"
        assert r.json()["status"] == status

    body = r.json()
    assert body["processed_by"] == "clerk"
    assert body["payment_status"] == "COMPLETED"  # cash on delivery is paid on completion
    assert await stock_of(session_factory, product.id) == 1

    loyalty = await loyalty_of(session_factory, "alice")
    assert loyalty.points == 6  # floor(34.00 / 5)
    assert loyalty.version == 1

    # A second completion is an invalid transition and credits nothing.
    r = await move(client, order["id"], "COMPLETED", employee_headers)
    assert r.status_code == 400
    assert (await loyalty_of(session_factory, "alice")).points == 6
    assert await stock_of(session_factory, product.id) == 1

    async with session_factory() as session:
        movements = (await session.execute(select(StockMovement))).scalars().all()
    assert [(m.reason, m.quantity_delta, m.reference_id) for m in movements] == [
        (MovementReason.ORDER, -2, order["order_number"])
    ]


@pytest.mark.asyncio
async def test_transitions_cannot_skip_steps(client, db, customer_headers, employee_headers):
    product = await add_product(db)
    order = await place_order(client, customer_headers, product.id, quantity=1)
    r = await move(client, order["id"], "COMPLETED", employee_headers)
    assert r.status_code == 400
    r = await move(client, order["id"], "PENDING", employee_headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_customers_cannot_change_status(client, db, customer_headers):
    product = await add_product(db)
    order = await place_order(client, customer_headers, product.id, quantity=1)
    r = await move(client, order["id"], "CONFIRMED", customer_headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_cancel_records_default_reason(client, db, customer_headers):
    product = await add_product(db)
    order = await place_order(client, customer_headers, product.id, quantity=1)

    r = await client.post(f"/api/orders/{order['id']}/cancel", headers=customer_headers)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "CANCELLED"
    assert r.json()["cancellation_reason"] == default_cancel_reason("alice")

    # Terminal: nothing moves out of CANCELLED.
    r = await client.post(f"/api/orders/{order['id']}/cancel", headers=customer_headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_staff_cancel_with_reason(client, db, customer_headers, employee_headers):
    product = await add_product(db)
    order = await place_order(client, customer_headers, product.id, quantity=1)
    r = await client.patch(
        f"/api/orders/{order['id']}/status",
        json={"status": "CANCELLED", "reason": "Out of delivery area"},
        headers=employee_headers,
    )
    assert r.status_code == 200
    assert r.json()["cancellation_reason"] == "Out of delivery area"
    assert r.json()["processed_by"] == "clerk"


@pytest.mark.asyncio
async def test_completed_order_cannot_be_cancelled(client, db, customer_headers, employee_headers):
    product = await add_product(db)
    order = await place_order(client, customer_headers, product.id, quantity=1)
    for status in FORWARD:
        await move(client, order["id"], status, employee_headers)
    r = await client.post(f"/api/orders/{order['id']}/cancel", headers=customer_headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_customers_only_see_their_own_orders(client, db, customer_headers):
    product = await add_product(db)
    order = await place_order(client, customer_headers, product.id, quantity=1)
    other = bearer("bob", "CLIENT")

    r = await client.get(f"/api/orders/{order['id']}", headers=other)
    assert r.status_code == 403
    r = await client.post(f"/api/orders/{order['id']}/cancel", headers=other)
    assert r.status_code == 403
    r = await client.get("/api/orders/my-orders", headers=other)
    assert r.json() == []
    r = await client.get("/api/orders/my-orders", headers=customer_headers)
    assert [o["id"] for o in r.json()] == [order["id"]]


@pytest.mark.asyncio
async def test_staff_search_and_top_products(client, db, customer_headers, employee_headers):
    product = await add_product(db, stock=10)
    first = await place_order(client, customer_headers, product.id, quantity=2)
    await place_order(client, customer_headers, product.id, quantity=1)
    await move(client, first["id"], "CONFIRMED", employee_headers)

    r = await client.get("/api/orders", params={"status": "PENDING"}, headers=employee_headers)
    assert r.status_code == 200
    assert r.json()["total"] == 1

    r = await client.get("/api/orders", params={"search": "alice", "period": "today"}, headers=employee_headers)
    assert r.json()["total"] == 2

    r = await client.get("/api/orders/top-products", headers=employee_headers)
    assert r.json()[0]["product_id"] == product.id
    assert r.json()[0]["total_quantity_sold"] == 2  # only CONFIRMED-and-later orders count
    assert r.json()[0]["number_of_orders"] == 1


@pytest.mark.asyncio
async def test_daily_selling_counts_revenue_orders(client, db, customer_headers, employee_headers):
    product = await add_product(db, stock=10)
    confirmed = await place_order(client, customer_headers, product.id)
    await place_order(client, customer_headers, product.id)
    await client.patch(f"/api/orders/{confirmed['id']}/status", json={"status": "CONFIRMED"}, headers=employee_headers)

    r = await client.get("/api/orders/analytics/daily-selling", headers=employee_headers)
    assert r.status_code == 200, r.text
    assert Decimal(r.json()["value"]) == Decimal("34.00")  # the PENDING order is not revenue

    r = await client.get("/api/orders/analytics/daily-selling", params={"date": "2020-01-01"}, headers=employee_headers)
    assert r.json()["date"] == "2020-01-01"
    assert Decimal(r.json()["value"]) == 0

    r = await client.get("/api/orders/analytics/daily-selling", headers=customer_headers)
    assert r.status_code == 403


# ─── Stock adjustment modes ────────────────────────────────────────────────────
async def ready_order_with_deleted_product(db, session_factory):
    kept = await add_product(db, sku="KEEP", stock=5)
    gone = await add_product(db, sku="GONE", stock=5)
    customer = Identity("alice", frozenset({"CLIENT"}))
    service = OrderService(db, AuditService(db))
    order = await service.create_order(
        OrderCreateRequest(
            items=[{"product_id": kept.id, "quantity": 2}, {"product_id": gone.id, "quantity": 1}],
            payment_method="CASH_ON_DELIVERY",
        ),
        customer,
    )
    for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY_FOR_PICKUP):
        await service.update_status(order.id, status, "clerk")
    await db.delete(gone)
    await db.commit()
    return order, kept


@pytest.mark.asyncio
async def test_lenient_mode_skips_missing_products(db, session_factory):
    order, kept = await ready_order_with_deleted_product(db, session_factory)
    scheduled = []
    pipeline = OrderCompletedPipeline(db, "clerk", lambda *args: scheduled.append(args), session_factory, LENIENT)

    completed = await OrderService(db, AuditService(db)).update_status(
        order.id, OrderStatus.COMPLETED, "clerk", on_completed=pipeline
    )

    assert completed.status == OrderStatus.COMPLETED
    assert await stock_of(session_factory, kept.id) == 3
    assert len(scheduled) == 1


@pytest.mark.asyncio
async def test_strict_mode_aborts_completion(db, session_factory):
    order, kept = await ready_order_with_deleted_product(db, session_factory)
    order_id, kept_id = order.id, kept.id
    scheduled = []
    pipeline = OrderCompletedPipeline(db, "clerk", lambda *args: scheduled.append(args), session_factory, STRICT)

    with pytest.raises(NotFound):
        await OrderService(db, AuditService(db)).update_status(
            order_id, OrderStatus.COMPLETED, "clerk", on_completed=pipeline
        )
    await db.rollback()

    async with session_factory() as session:
        assert (await session.get(Order, order_id)).status == OrderStatus.READY_FOR_PICKUP
    assert await stock_of(session_factory, kept_id) == 5
    assert scheduled == []


# ─── Concurrent status changes ─────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_concurrent_completion_is_applied_once(db, session_factory):
    product = await add_product(db, sku="RACE", stock=5)
    product_id = product.id
    service = OrderService(db, AuditService(db))
    order = await service.create_order(
        OrderCreateRequest(items=[{"product_id": product_id, "quantity": 2}], payment_method="CASH_ON_DELIVERY"),
        Identity("alice", frozenset({"CLIENT"})),
    )
    order_id = order.id
    for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY_FOR_PICKUP):
        await service.update_status(order_id, status, "clerk")

    scheduled = []
    async with session_factory() as other:
        # Both sessions now hold the order as READY_FOR_PICKUP.
        stale = await other.get(Order, order_id)
        assert stale.status == OrderStatus.READY_FOR_PICKUP

        first = OrderCompletedPipeline(db, "clerk", lambda *args: scheduled.append(args), session_factory, LENIENT)
        await service.update_status(order_id, OrderStatus.COMPLETED, "clerk", on_completed=first)

        second = OrderCompletedPipeline(
            other, "admin", lambda *args: scheduled.append(args), session_factory, LENIENT
        )
        with pytest.raises(InvalidOperation):
            await OrderService(other, AuditService(other)).update_status(
                order_id, OrderStatus.COMPLETED, "admin", on_completed=second
            )

    assert await stock_of(session_factory, product_id) == 3
    assert len(scheduled) == 1
    async with session_factory() as session:
        movements = await session.scalar(
            select(func.count()).select_from(StockMovement).where(StockMovement.product_id == product_id)
        )
        assert movements == 1
        assert (await session.get(Order, order_id)).processed_by == "clerk"


# ─── PayPal ────────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_paypal_checkout_capture_and_invoice(client, db, paypal, mailer, customer_headers):
    await add_user(db, "alice")
    product = await add_product(db, selling_price="30.00", stock=5)

    order = await place_order(client, customer_headers, product.id, quantity=2, payment_method="PAYPAL")
    assert order["payment_order_id"] == "PAYPAL-1"
    assert paypal.created == [(order["order_number"], Decimal("72.00"))]

    r = await client.post(
        "/api/orders/capture",
        json={
            "payment_order_id": "PAYPAL-1",
            "shipping_address": {"street": "1 rue de la Paix", "city": "Paris", "postal_code": "75002"},
        },
        headers=customer_headers,
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "CONFIRMED"
    assert body["payment_status"] == "COMPLETED"
    assert body["shipping_address"]["city"] == "Paris"

    kind, to, pdf = mailer.sent[-1]
    assert (kind, to) == ("invoice", "alice@example.com")
    assert pdf.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_declined_capture_marks_payment_failed(client, db, paypal, customer_headers):
    product = await add_product(db, stock=5)
    order = await place_order(client, customer_headers, product.id, quantity=1, payment_method="PAYPAL")
    paypal.capture_status = "DECLINED"

    r = await client.post(
        "/api/orders/capture", json={"payment_order_id": order["payment_order_id"]}, headers=customer_headers
    )
    assert r.status_code == 502

    r = await client.get(f"/api/orders/{order['id']}", headers=customer_headers)
    assert r.json()["status"] == "PENDING"
    assert r.json()["payment_status"] == "FAILED"


@pytest.mark.asyncio
async def test_capture_for_unknown_payment_is_404(client, customer_headers):
    r = await client.post("/api/orders/capture", json={"payment_order_id": "nope"}, headers=customer_headers)
    assert r.status_code == 404
