import os
import uuid

# Settings are read once per process, so the environment must be in place before
# any storefront module is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["CLOUDINARY_CLOUD_NAME"] = "demo"
os.environ["CLOUDINARY_API_KEY"] = "123456"
os.environ["CLOUDINARY_API_SECRET"] = "cloud_secret"

from decimal import Decimal  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from storefront.api.main import app  # noqa: E402
from storefront.core.security import create_session, hash_password  # noqa: E402
from storefront.db.models import Category, Order, Product, ProductVariant, User  # noqa: E402
from storefront.db.session import SessionLocal, drop_db, init_db  # noqa: E402
from storefront.services.image_host import CloudinaryClient, get_image_host  # noqa: E402
from storefront.services.payments import RazorpayClient, get_payment_client  # noqa: E402

SHIPPING_ADDRESS = {
    "fullName": "Asha Verma",
    "email": "asha@example.com",
    "phone": "9876543210",
    "addressLine1": "12 MG Road",
    "city": "Pune",
    "state": "Maharashtra",
    "pincode": "411001",
}


def _razorpay_handler(request: httpx.Request) -> httpx.Response:
    assert request.url.path == "/v1/orders"
    return httpx.Response(200, json={"id": "order_test123", "amount": 0, "currency": "INR", "status": "created"})


class RecordingCloudinary:
    """Collects the requests sent to the image host."""

    def __init__(self):
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/image/upload"):
            return httpx.Response(
                200,
                json={
                    "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/products/shoe.jpg",
                    "public_id": "products/shoe",
                    "width": 800,
                    "height": 600,
                    "format": "jpg",
                    "bytes": 2048,
                },
            )
        return httpx.Response(200, json={"result": "ok"})


@pytest.fixture(autouse=True)
def schema():
    init_db()
    yield
    drop_db()


@pytest.fixture
def cloudinary():
    return RecordingCloudinary()


@pytest.fixture
def client(cloudinary):
    app.dependency_overrides[get_payment_client] = lambda: RazorpayClient(
        transport=httpx.MockTransport(_razorpay_handler)
    )
    app.dependency_overrides[get_image_host] = lambda: CloudinaryClient(transport=httpx.MockTransport(cloudinary))
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_user(db, email: str, role: str = "customer", name: str = "Test User", password: str = "secret123") -> dict:
    user = User(name=name, email=email, password_hash=hash_password(password), role=role)
    db.add(user)
    db.flush()
    session = create_session(db, user)
    db.commit()
    return {"user": user, "headers": {"Authorization": f"Bearer {session.session_token}"}}


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role="admin", name="Admin")


@pytest.fixture
def customer(db):
    return make_user(db, "asha@example.com", name="Asha Verma")


def make_product(
    db,
    slug: str = "classic-tee",
    price: str = "500",
    stock: int = 10,
    name: str = None,
    category: Category = None,
    **extra,
) -> Product:
    product = Product(
        name=name or slug.replace("-", " ").title(),
        slug=slug,
        base_price=Decimal(price),
        category_id=category.id if category is not None else None,
        **extra,
    )
    product.variants = [ProductVariant(sku=f"{slug.upper()}-M", size="M", color="Black", stock=stock)]
    db.add(product)
    db.commit()
    return product


def order_payload(product: Product, quantity: int = 1, payment_method: str = "cod", **extra) -> dict:
    return {
        "items": [{"productId": str(product.id), "variantId": str(product.variants[0].id), "quantity": quantity}],
        "shippingAddress": SHIPPING_ADDRESS,
        "paymentMethod": payment_method,
        **extra,
    }


def delivered_paid_order(client, db, customer, admin, product: Product, quantity: int = 1) -> Order:
    """Place an order as `customer` and walk it to paid + delivered as `admin`."""
    response = client.post("/api/orders", json=order_payload(product, quantity), headers=customer["headers"])
    assert response.status_code == 201, response.text
    order_id = response.json()["orderId"]
    client.patch(f"/api/admin/orders/{order_id}/payment-status", json={"paymentStatus": "paid"}, headers=admin["headers"])
    client.patch(f"/api/admin/orders/{order_id}/status", json={"status": "delivered"}, headers=admin["headers"])
    db.expire_all()
    return db.get(Order, uuid.UUID(order_id))
