import json
from decimal import Decimal

from storefront.stores.cart import CartItem, CartStore
from storefront.stores.comparison import ComparisonItem, ComparisonStore
from storefront.stores.recently_viewed import RecentlyViewedStore, ViewedItem
from storefront.stores.wishlist import WishlistItem, WishlistStore


def _line(quantity=1, stock=5, variant_id="v1") -> CartItem:
    return CartItem(
        product_id="p1",
        variant_id=variant_id,
        name="Tee",
        slug="tee",
        price=Decimal("250"),
        quantity=quantity,
        stock=stock,
    )


def test_cart_merges_and_caps_at_stock():
    cart = CartStore()
    first = cart.add_item(_line(quantity=2))
    assert cart.is_open is True
    assert first.id.startswith("p1-v1-")

    cart.add_item(_line(quantity=10))
    assert len(cart.items) == 1
    assert cart.item_count() == 5
    assert cart.subtotal() == Decimal("1250")

    cart.add_item(_line(variant_id=None))
    assert cart.items[1].id.startswith("p1-default-")


def test_cart_quantity_updates():
    cart = CartStore()
    line = cart.add_item(_line(stock=3))
    cart.update_quantity(line.id, 8)
    assert cart.items[0].quantity == 3
    cart.update_quantity(line.id, 0)
    assert cart.items == []


def test_cart_persists_items_only():
    cart = CartStore()
    cart.add_item(_line())
    data = json.loads(cart.to_json())
    assert set(data) == {"items"}
    assert data["items"][0]["productId"] == "p1"

    restored = CartStore.from_json(cart.to_json())
    assert restored.is_open is False
    assert restored.item_count() == 1

    restored.toggle()
    assert restored.is_open is True
    restored.clear()
    assert restored.item_count() == 0


def test_comparison_holds_four_distinct_products():
    store = ComparisonStore()
    for n in range(4):
        assert store.add_item(ComparisonItem(product_id=f"p{n}", name="x", slug="x", price=Decimal("1")))
    assert store.can_add() is False
    assert store.add_item(ComparisonItem(product_id="p9", name="x", slug="x", price=Decimal("1"))) is False

    store.remove_item("p0")
    assert store.add_item(ComparisonItem(product_id="p1", name="x", slug="x", price=Decimal("1"))) is False
    assert store.count() == 3
    assert ComparisonStore.from_json(store.to_json()).contains("p3")


def test_recently_viewed_moves_to_front_and_trims():
    store = RecentlyViewedStore()
    for n in range(14):
        store.add_item(ViewedItem(product_id=f"p{n}", name="x", slug="x", price=Decimal("1")), viewed_at=n)
    assert len(store.items) == 12
    assert store.items[0].product_id == "p13"

    store.add_item(ViewedItem(product_id="p5", name="x", slug="x", price=Decimal("1")), viewed_at=99)
    assert [i.product_id for i in store.items[:2]] == ["p5", "p13"]
    assert store.items[0].viewed_at == 99
    assert len(store.get_items(exclude_product_id="p5")) == 11


def _saved(product_id: str) -> WishlistItem:
    return WishlistItem(product_id=product_id, name="Linen Shirt", slug="linen-shirt", price=Decimal("1299"))


def test_wishlist_keeps_one_entry_per_product():
    store = WishlistStore()
    store.add_item(_saved("p1"))
    store.add_item(_saved("p1"))
    assert store.count() == 1
    assert store.items[0].id.startswith("wishlist-p1-")

    assert store.toggle_item(_saved("p2")) is True
    assert store.toggle_item(_saved("p1")) is False
    assert [i.product_id for i in store.items] == ["p2"]

    restored = WishlistStore.from_json(store.to_json())
    assert restored.contains("p2") and not restored.contains("p1")
    assert json.loads(store.to_json())["items"][0]["productId"] == "p2"

    restored.remove_item("p2")
    store.clear()
    assert restored.count() == store.count() == 0
