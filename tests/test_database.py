import pytest

from storefront.models import database as store
from storefront.services.errors import StoreUnavailable


async def test_cart_lines_join_product_snapshot(db_path):
    await store.add_cart_quantity(db_path, "s1", "p-phone", 2)

    lines = await store.get_cart_lines(db_path, "s1")
    assert len(lines) == 1
    line = lines[0]
    assert line["product_id"] == "p-phone"
    assert line["quantity"] == 2
    assert line["product_name"] == "Smartphone X"
    assert line["product_price"] == 10.0
    assert line["id"] != "p-phone"


async def test_add_cart_quantity_merges_into_one_line(db_path):
    first = await store.add_cart_quantity(db_path, "s1", "p-phone", 2)
    second = await store.add_cart_quantity(db_path, "s1", "p-phone", 3)

    assert first == second
    lines = await store.get_cart_lines(db_path, "s1")
    assert [(l["product_id"], l["quantity"]) for l in lines] == [("p-phone", 5)]


async def test_sessions_do_not_share_lines(db_path):
    s1_line = await store.add_cart_quantity(db_path, "s1", "p-phone", 1)
    await store.add_cart_quantity(db_path, "s2", "p-charger", 1)

    await store.update_cart_line(db_path, "s2", s1_line, 99)
    await store.delete_cart_line(db_path, "s2", s1_line)
    assert [(l["id"], l["quantity"]) for l in await store.get_cart_lines(db_path, "s1")] == [(s1_line, 1)]

    await store.delete_cart_lines(db_path, "s1")

    assert await store.get_cart_lines(db_path, "s1") == []
    assert len(await store.get_cart_lines(db_path, "s2")) == 1


async def test_driver_errors_become_store_unavailable(tmp_path):
    missing = str(tmp_path / "no-tables.db")
    with pytest.raises(StoreUnavailable):
        await store.get_cart_lines(missing, "s1")


async def test_list_products_filters_by_category(db_path):
    products = await store.list_products(db_path, "Accesorios")
    assert [p["id"] for p in products] == ["p-charger"]
    assert "embedding" not in products[0]


async def test_find_similar_products_orders_and_thresholds(db_path):
    await store.save_product(db_path, {"id": "p-tablet", "name": "Tablet", "price": 200})
    await store.save_embedding(db_path, "p-phone", [1.0, 0.0, 0.0])
    await store.save_embedding(db_path, "p-tablet", [0.9, 0.1, 0.0])
    await store.save_embedding(db_path, "p-charger", [0.0, 1.0, 0.0])

    similar = await store.find_similar_products(db_path, "p-phone", 0.6, 4)

    assert [p["id"] for p in similar] == ["p-tablet"]
    assert 0.6 <= similar[0]["similarity"] <= 1.0


async def test_match_products_by_embedding(db_path):
    await store.save_embedding(db_path, "p-phone", [1.0, 0.0])
    await store.save_embedding(db_path, "p-charger", [0.6, 0.8])

    matches = await store.match_products(db_path, [1.0, 0.0], 0.5, 1)

    assert [m["id"] for m in matches] == ["p-phone"]
    assert matches[0]["similarity"] == pytest.approx(1.0)


async def test_save_embedding_unknown_product(db_path):
    assert await store.save_embedding(db_path, "nope", [1.0]) is False


async def test_event_stats(db_path):
    await store.log_event(db_path, "s1", "assistant_query", {"response_ms": 100})
    await store.log_event(db_path, "s1", "assistant_query", {"response_ms": 300})
    await store.log_event(db_path, "s1", "other", None)

    stats = await store.event_stats(db_path, "assistant_query")

    assert stats == {"total": 2, "avg_response_ms": 200}
    by_hour = await store.events_by_hour(db_path, "assistant_query")
    assert sum(by_hour.values()) == 2
