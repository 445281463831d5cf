import pytest
from unittest.mock import AsyncMock

from api.services.customers import CustomerService, normalize_phone_number

@pytest.mark.parametrize('raw,expected', [
    ('+357 99 123456', '+357-99-123456'),
    ('35799123456', '+357-99-123456'),
    ('99123456', '+357-99-123456'),
    ('+44 20 7946 0000', '+44 20 7946 0000'),
    (None, ''),
])
def test_normalize_phone_number(raw, expected):
    assert normalize_phone_number(raw) == expected

@pytest.mark.asyncio
async def test_identify_customer_builds_profile(fallback_access):
    service = CustomerService(fallback_access)
    profile = await service.identify_customer('+357 99 123456')

    assert profile['name'] == 'Demo Customer'
    assert profile['phoneNumber'] == '+357-99-123456'
    assert profile['totalOrders'] == 2
    assert profile['isVipCustomer'] is True  # 1599.98 spent
    assert profile['preferredLanguage'] == 'en'
    assert len(profile['orderHistory']) == 1

@pytest.mark.asyncio
async def test_identify_customer_tries_other_formats(fallback_access):
    fallback_access.get_customer_by_phone = AsyncMock(side_effect=[
        None, None, {'customer_name': 'Ελένη Κ', 'total_orders': 1, 'total_spent': 50}
    ])
    profile = await CustomerService(fallback_access).identify_customer('+357 99 123456')
    assert profile['name'] == 'Ελένη Κ'
    assert profile['preferredLanguage'] == 'el'
    assert profile['isVipCustomer'] is False

@pytest.mark.asyncio
async def test_identify_customer_unknown(fallback_access):
    fallback_access.get_customer_by_phone = AsyncMock(return_value=None)
    assert await CustomerService(fallback_access).identify_customer('+357 99 000000') is None

@pytest.mark.asyncio
async def test_identify_customer_without_phone(fallback_access):
    assert await CustomerService(fallback_access).identify_customer(None) is None

@pytest.mark.asyncio
async def test_identify_customer_error_is_tracked(fallback_access):
    fallback_access.get_customer_by_phone = AsyncMock(side_effect=RuntimeError('lookup failed'))
    fallback_access.track_event = AsyncMock()
    assert await CustomerService(fallback_access).identify_customer('99123456', conversation_id=3) is None
    event_type, properties, conversation_id = fallback_access.track_event.call_args[0]
    assert event_type == 'customer_identification_failed'
    assert properties['error'] == 'lookup failed'
    assert conversation_id == 3

def test_greetings():
    vip = {'name': 'Maria Papadopoulou', 'totalOrders': 7, 'isVipCustomer': True}
    returning = {'name': 'Nikos', 'totalOrders': 2, 'isVipCustomer': False}
    new = {'name': 'Anna', 'totalOrders': 0, 'isVipCustomer': False}

    assert 'most valued' in CustomerService.generate_greeting(vip)
    assert CustomerService.generate_greeting(returning).startswith('Welcome back Nikos')
    assert CustomerService.generate_greeting(new).startswith('Hello Anna')
    assert CustomerService.generate_greeting(vip, 'el').startswith('Γεια σας Maria')
    assert CustomerService.generate_greeting(None) is None

def test_customer_context():
    profile = {'name': 'Nikos', 'totalOrders': 3, 'isVipCustomer': False, 'preferredLanguage': 'en',
               'orderHistory': [{'id': 1}, {'id': 2}, {'id': 3}, {'id': 4}]}
    context = CustomerService.get_customer_context(profile)
    assert context['isReturningCustomer'] is True
    assert context['canSkipVerification'] is True
    assert len(context['recentOrders']) == 3
    assert CustomerService.get_customer_context(None) == {}
