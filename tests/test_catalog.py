"""
Back Office catalog tests

Tests:
  1. Categories and suppliers: create, uniqueness, archive (hidden from lists, readable by id)
  2. Products: pricing rules, SKU uniqueness, search filters, stock updates
  3. Public catalog with category names
"""
from decimal import Decimal

import pytest

from conftest import add_product


def product_payload(**overrides):
    payload = {
        "sku": "SKU-1",
        "name": "Widget",
        "purchase_price": "5.00",
        "selling_price": "10.00",
        "stock_quantity": 3,
        "min_stock": 1,
    }
    payload.update(overrides)
    return payload


# ─── Categories ────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_category_archive_hides_from_list_but_not_by_id(client, admin_headers):
    r = await client.post("/api/categories", json={"name": "Dairy"}, headers=admin_headers)
    assert r.status_code == 201, r.text
    category = r.json()
    assert category["status"] == "ACTIVE"

    r = await client.delete(f"/api/categories/{category['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "ARCHIVED"

    r = await client.get("/api/categories", headers=admin_headers)
    assert r.json() == []
    r = await client.get(f"/api/categories/{category['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "ARCHIVED"


@pytest.mark.asyncio
async def test_duplicate_category_name_is_409(client, admin_headers):
    await client.post("/api/categories", json={"name": "Dairy"}, headers=admin_headers)
    r = await client.post("/api/categories", json={"name": "Dairy"}, headers=admin_headers)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_only_admin_archives(client, admin_headers, employee_headers):
    r = await client.post("/api/categories", json={"name": "Dairy"}, headers=employee_headers)
    assert r.status_code == 201
    r = await client.delete(f"/api/categories/{r.json()['id']}", headers=employee_headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_status_endpoint_cannot_archive(client, admin_headers):
    r = await client.post("/api/categories", json={"name": "Dairy"}, headers=admin_headers)
    category_id = r.json()["id"]
    r = await client.patch(f"/api/categories/{category_id}/status", json={"status": "ARCHIVED"}, headers=admin_headers)
    assert r.status_code == 400
    r = await client.patch(f"/api/categories/{category_id}/status", json={"status": "INACTIVE"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "INACTIVE"

    r = await client.get("/api/categories", params={"status": "INACTIVE"}, headers=admin_headers)
    assert [c["id"] for c in r.json()] == [category_id]


# ─── Suppliers ─────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_supplier_search_and_archive(client, admin_headers):
    r = await client.post(
        "/api/suppliers",
        json={"name": "Fromagerie Martin", "category": "Dairy", "email": "contact@martin.fr"},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    supplier = r.json()
    assert supplier["created_by"] == "admin"
    await client.post("/api/suppliers", json={"name": "Boulangerie Petit"}, headers=admin_headers)

    r = await client.get("/api/suppliers", params={"search": "martin"}, headers=admin_headers)
    assert [s["name"] for s in r.json()["items"]] == ["Fromagerie Martin"]

    await client.delete(f"/api/suppliers/{supplier['id']}", headers=admin_headers)
    r = await client.get("/api/suppliers", headers=admin_headers)
    assert r.json()["total"] == 1
    r = await client.get(f"/api/suppliers/{supplier['id']}", headers=admin_headers)
    assert r.json()["status"] == "ARCHIVED"


# ─── Products ──────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_create_product(client, admin_headers):
    r = await client.post("/api/products", json=product_payload(), headers=admin_headers)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["sku"] == "SKU-1"
    assert Decimal(body["effective_price"]) == Decimal("10.00")
    assert body["is_low_stock"] is False
    assert body["status"] == "ACTIVE"


@pytest.mark.asyncio
async def test_selling_price_must_exceed_purchase_price(client, admin_headers):
    r = await client.post(
        "/api/products", json=product_payload(purchase_price="10.00", selling_price="10.00"), headers=admin_headers
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_promotion_price_must_be_below_selling_price(client, admin_headers):
    r = await client.post(
        "/api/products",
        json=product_payload(is_on_promotion=True, promotion_price="12.00"),
        headers=admin_headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_sku_is_409(client, admin_headers):
    await client.post("/api/products", json=product_payload(), headers=admin_headers)
    r = await client.post("/api/products", json=product_payload(name="Other"), headers=admin_headers)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_unknown_category_is_404(client, admin_headers):
    r = await client.post("/api/products", json=product_payload(category_id="missing"), headers=admin_headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_update_keeps_pricing_rules(client, db, admin_headers):
    product = await add_product(db)
    r = await client.put(f"/api/products/{product.id}", json={"purchase_price": "11.00"}, headers=admin_headers)
    assert r.status_code == 400
    r = await client.put(f"/api/products/{product.id}", json={"selling_price": "12.50"}, headers=admin_headers)
    assert r.status_code == 200
    assert Decimal(r.json()["selling_price"]) == Decimal("12.50")


@pytest.mark.asyncio
async def test_archived_product_hidden_from_search_but_readable(client, db, admin_headers, customer_headers):
    product = await add_product(db)
    r = await client.delete(f"/api/products/{product.id}", headers=admin_headers)
    assert r.json()["status"] == "ARCHIVED"

    r = await client.get("/api/products", headers=customer_headers)
    assert r.json()["total"] == 0
    r = await client.get(f"/api/products/{product.id}", headers=customer_headers)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_product_search_filters(client, db, employee_headers):
    await add_product(db, sku="A", name="Apple juice", stock=0, min_stock=2)
    await add_product(db, sku="B", name="Butter", stock=10, min_stock=2, selling_price="3.00", purchase_price="1.00")

    async def names(**params):
        r = await client.get("/api/products", params=params, headers=employee_headers)
        assert r.status_code == 200, r.text
        return [p["name"] for p in r.json()["items"]]

    assert await names() == ["Apple juice", "Butter"]
    assert await names(search="butt") == ["Butter"]
    assert await names(is_out_of_stock="true") == ["Apple juice"]
    assert await names(is_in_stock="true") == ["Butter"]
    assert await names(is_low_stock="true") == ["Apple juice"]
    assert await names(max_price="5.00") == ["Butter"]

    r = await client.get("/api/products/low-stock", headers=employee_headers)
    assert [p["sku"] for p in r.json()] == ["A"]


@pytest.mark.asyncio
async def test_stock_update_is_audited(client, db, admin_headers, employee_headers):
    product = await add_product(db, stock=3)
    r = await client.patch(f"/api/products/{product.id}/stock", json={"quantity": 7}, headers=employee_headers)
    assert r.status_code == 200
    assert r.json()["stock_quantity"] == 7

    r = await client.get(f"/api/audit/entity/Product/{product.id}", headers=admin_headers)
    entry = r.json()[0]
    assert entry["action"] == "STOCK_UPDATE"
    assert entry["actor"] == "clerk"
    assert entry["old_data"] == {"stock_quantity": 3}
    assert entry["new_data"] == {"stock_quantity": 7}


@pytest.mark.asyncio
async def test_negative_stock_is_rejected(client, db, employee_headers):
    product = await add_product(db)
    r = await client.patch(f"/api/products/{product.id}/stock", json={"quantity": -1}, headers=employee_headers)
    assert r.status_code == 422


# ─── Public catalog ────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_catalog_lists_active_products_with_category_names(client, db, admin_headers):
    r = await client.post("/api/categories", json={"name": "Dairy"}, headers=admin_headers)
    category_id = r.json()["id"]
    await add_product(db, sku="A", name="Butter", category_id=category_id)
    archived = await add_product(db, sku="B", name="Old cheese", category_id=category_id)
    await client.delete(f"/api/products/{archived.id}", headers=admin_headers)

    r = await client.get("/api/catalog")
    assert r.status_code == 200
    entries = r.json()
    assert [(e["product"]["name"], e["category_name"]) for e in entries] == [("Butter", "Dairy")]

    r = await client.get("/api/catalog", params={"category_id": category_id})
    assert len(r.json()) == 1
