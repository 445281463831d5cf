import pytest
from datetime import date, datetime

from lib.fallback_store import FallbackStore, FALLBACK_PRODUCTS

@pytest.mark.asyncio
@pytest.mark.parametrize('query,expected', [
    ('rtx', ['RTX 4090 Graphics Card']),
    ('i9', ['Intel Core i9-13900K']),
    ('zzz', []),
    ('NVIDIA', ['RTX 4090 Graphics Card']),
    ('laptops', ['Gaming Laptop ASUS ROG']),
])
async def test_search_products_demo_catalog(fallback_store, query, expected):
    results = await fallback_store.search_products(query, 10)
    assert [p['name'] for p in results] == expected

@pytest.mark.asyncio
@pytest.mark.parametrize('query', ['a', 'in', 'G', 'e', 'rtx'])
async def test_search_products_matches_and_limit(fallback_store, query):
    for limit in (0, 1, 2, 10):
        results = await fallback_store.search_products(query, limit)
        assert len(results) <= limit
        for product in results:
            haystack = ' '.join([product['name'], product['brand'], product['category']]).lower()
            assert query.lower() in haystack

@pytest.mark.asyncio
async def test_search_keeps_catalog_order(fallback_store):
    # 'r' matches every product
    results = await fallback_store.search_products('r', 10)
    assert [p['id'] for p in results] == [1, 2, 3]

@pytest.mark.asyncio
async def test_fts_is_substring_search(fallback_store):
    assert await fallback_store.search_products_fts('intel', 5) == await fallback_store.search_products('intel', 5)

@pytest.mark.asyncio
async def test_results_do_not_expose_catalog(fallback_store):
    results = await fallback_store.search_products('rtx', 10)
    results[0]['stock_quantity'] = -1
    again = await fallback_store.search_products('rtx', 10)
    assert again[0]['stock_quantity'] == 5

@pytest.mark.asyncio
async def test_sku_lookup_is_case_insensitive_exact(fallback_store):
    product = await fallback_store.get_product_by_sku_or_name('asus-rog-g15')
    assert product['name'] == 'Gaming Laptop ASUS ROG'

    # not a substring of any name
    product = await fallback_store.get_product_by_sku_or_name('rtx4090-24gb')
    assert product['id'] == 1

@pytest.mark.asyncio
async def test_sku_match_wins_over_name_match():
    products = [
        {'id': 1, 'name': 'Cable X1', 'brand': 'A', 'category': 'Cables', 'price': 1.0,
         'stock_quantity': 1, 'sku': 'CBL-1', 'description': ''},
        {'id': 2, 'name': 'Adapter', 'brand': 'B', 'category': 'Cables', 'price': 2.0,
         'stock_quantity': 1, 'sku': 'X1', 'description': ''},
    ]
    store = FallbackStore(products=products)
    product = await store.get_product_by_sku_or_name('x1')
    assert product['id'] == 2

@pytest.mark.asyncio
async def test_name_lookup_and_miss(fallback_store):
    product = await fallback_store.get_product_by_sku_or_name('core i9')
    assert product['sku'] == 'I9-13900K'
    assert await fallback_store.get_product_by_sku_or_name('toaster') is None

@pytest.mark.asyncio
async def test_availability_is_always_true(fallback_store):
    assert await fallback_store.check_availability(datetime(2024, 1, 1, 3, 0)) is True
    assert await fallback_store.check_availability(datetime(2030, 12, 31, 23, 59), 240) is True

@pytest.mark.asyncio
async def test_available_slots_on_given_date(fallback_store):
    slots = await fallback_store.get_available_slots(date(2025, 3, 14), 'repair', 30)
    assert len(slots) == 5
    assert [slot.hour for slot in slots] == [9, 11, 13, 15, 17]
    assert all(slot.date() == date(2025, 3, 14) for slot in slots)
    assert all(slot.minute == 0 for slot in slots)

@pytest.mark.asyncio
async def test_available_slots_accepts_datetime(fallback_store):
    slots = await fallback_store.get_available_slots(datetime(2025, 3, 14, 16, 45), 'repair')
    assert slots[0] == datetime(2025, 3, 14, 9, 0)

@pytest.mark.asyncio
async def test_create_appointment_is_pending_with_new_id(fallback_store, monitor):
    data = {'service_type': 'repair', 'customer_phone': '+35799123456', 'status': 'confirmed'}
    first = await fallback_store.create_appointment(data)
    second = await fallback_store.create_appointment(data)

    assert first['service_type'] == 'repair'
    assert first['customer_phone'] == '+35799123456'
    assert first['status'] == 'pending'
    assert first['id'] != second['id']
    assert 'created_at' in first
    assert monitor.degraded_writes['appointment'] == 2

@pytest.mark.asyncio
async def test_update_conversation_without_create(fallback_store, monitor):
    result = await fallback_store.update_conversation('call-123', {'foo': 1})
    assert result['vapi_call_id'] == 'call-123'
    assert result['foo'] == 1
    assert monitor.degraded_writes['conversation_update'] == 1

@pytest.mark.asyncio
async def test_create_conversation_echo(fallback_store, monitor, caplog):
    with caplog.at_level('WARNING'):
        result = await fallback_store.create_conversation('call-1', '+35799000000', {'source': 'test'})
    assert result['vapi_call_id'] == 'call-1'
    assert result['phone_number'] == '+35799000000'
    assert result['metadata'] == {'source': 'test'}
    assert monitor.degraded_writes['conversation'] == 1
    assert 'not saved' in caplog.text

@pytest.mark.asyncio
async def test_track_event_returns_none(fallback_store):
    assert await fallback_store.track_event('call_started', {'callId': 'x'}) is None

@pytest.mark.asyncio
async def test_update_call_cost_echo(fallback_store, monitor):
    result = await fallback_store.update_call_cost('call-9', 0.42, {'llm': 0.1})
    assert result == {'vapi_call_id': 'call-9', 'cost': 0.42, 'metadata': {'costs': {'llm': 0.1}}}
    assert monitor.degraded_writes['call_cost'] == 1

@pytest.mark.asyncio
async def test_demo_customer_data(fallback_store):
    customer = await fallback_store.get_customer_by_phone('+35799111111')
    assert customer['phone_number'] == '+35799111111'
    assert customer['customer_name'] == 'Demo Customer'

    history = await fallback_store.get_customer_order_history('+35799111111')
    assert history[0]['reference_number'] == 'ORD-2024-001'

    found = await fallback_store.search_customers_by_name('anyone')
    assert found[0]['customer_email'] == 'demo@armenius.com.cy'

def test_catalog_skus_unique():
    skus = [p['sku'].lower() for p in FALLBACK_PRODUCTS]
    assert len(skus) == len(set(skus))
    assert all(p['stock_quantity'] >= 0 for p in FALLBACK_PRODUCTS)

@pytest.mark.asyncio
async def test_find_orders_by_tracking_or_reference(fallback_store):
    by_tracking = await fallback_store.find_orders(tracking_number='cy123456789')
    assert [order['reference_number'] for order in by_tracking] == ['ORD-2024-001234']

    by_reference = await fallback_store.find_orders(order_number='ord-2024')
    assert len(by_reference) == 2
    assert await fallback_store.find_orders() == []

@pytest.mark.asyncio
async def test_find_orders_returns_copies(fallback_store):
    order = (await fallback_store.find_orders(order_number='001234'))[0]
    order['status'] = 'cancelled'
    assert (await fallback_store.find_orders(order_number='001234'))[0]['status'] == 'shipped'

@pytest.mark.asyncio
async def test_fallback_keeps_no_appointments(fallback_store):
    assert await fallback_store.find_appointments(customer_phone='+35799123456') == []
