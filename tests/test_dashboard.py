from datetime import datetime, timedelta
from decimal import Decimal

from conftest import delivered_paid_order, make_product, order_payload
from storefront.db.base import utc_now
from storefront.db.models import Category
from storefront.services.reports import bucket_sales, month_start, percent_change, previous_month_start


def test_month_boundaries():
    moment = datetime(2024, 1, 17, 15, 30)
    assert month_start(moment) == datetime(2024, 1, 1)
    assert previous_month_start(moment) == datetime(2023, 12, 1)


def test_percent_change():
    assert percent_change(150, 100) == 50.0
    assert percent_change(Decimal("80"), Decimal("120")) == -33.3
    assert percent_change(10, 0) == 0.0


def test_bucket_sales_orders_chronologically():
    rows = [
        (datetime(2024, 3, 2, 9), Decimal("100")),
        (datetime(2024, 2, 28, 18), Decimal("50")),
        (datetime(2024, 3, 2, 20), Decimal("25.50")),
    ]
    assert bucket_sales(rows) == [("2024-02-28", 1, Decimal("50")), ("2024-03-02", 2, Decimal("125.50"))]
    assert bucket_sales(rows, "month") == [("2024-02", 1, Decimal("50")), ("2024-03", 2, Decimal("125.50"))]


def test_stats(client, db, customer, admin):
    product = make_product(db, price="500", stock=10)
    make_product(db, slug="scarf", stock=3)
    delivered_paid_order(client, db, customer, admin, product)
    client.post("/api/orders", json=order_payload(product), headers=customer["headers"])

    stats = client.get("/api/admin/dashboard/stats", headers=admin["headers"]).json()
    assert stats["totalProducts"] == 2
    assert stats["totalOrders"] == 2
    assert stats["todayOrders"] == 2
    assert stats["pendingOrders"] == 1
    assert stats["totalCustomers"] == 1
    assert stats["lowStockCount"] == 1
    assert Decimal(stats["totalRevenue"]) == Decimal("549")
    assert Decimal(stats["avgOrderValue"]) == Decimal("549")
    assert stats["revenueChange"] == 0.0


def test_reports(client, db, customer, admin):
    tops = Category(name="Tops", slug="tops")
    db.add(tops)
    db.commit()
    tee = make_product(db, price="1000", category=tops)
    mug = make_product(db, slug="mug", price="300")
    delivered_paid_order(client, db, customer, admin, tee, quantity=2)
    delivered_paid_order(client, db, customer, admin, mug)
    client.post("/api/orders", json=order_payload(mug, quantity=3), headers=customer["headers"])

    window = {
        "start_date": (utc_now() - timedelta(days=1)).isoformat(),
        "end_date": (utc_now() + timedelta(days=1)).isoformat(),
    }
    summary = client.get("/api/admin/dashboard/reports/summary", params=window, headers=admin["headers"]).json()
    assert summary["totalOrders"] == 2
    assert Decimal(summary["totalRevenue"]) == Decimal("2349")

    bad = client.get(
        "/api/admin/dashboard/reports/summary",
        params={"start_date": window["end_date"], "end_date": window["start_date"]},
        headers=admin["headers"],
    )
    assert bad.status_code == 400

    by_date = client.get("/api/admin/dashboard/reports/sales-by-date", headers=admin["headers"]).json()
    assert len(by_date) == 1
    assert by_date[0]["orders"] == 2

    top = client.get("/api/admin/dashboard/reports/top-products", headers=admin["headers"]).json()
    assert [(t["productName"], t["totalQuantity"]) for t in top] == [("Classic Tee", 2), ("Mug", 1)]

    categories = client.get("/api/admin/dashboard/reports/sales-by-category", headers=admin["headers"]).json()
    assert [(c["categoryName"], Decimal(c["totalRevenue"])) for c in categories] == [
        ("Tops", Decimal("2000")),
        ("Uncategorized", Decimal("300")),
    ]
