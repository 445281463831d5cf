import copy
import logging
import threading
import time
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Any

from lib.monitoring import Monitor
from lib.store import DataStore, StoreMode

logger = logging.getLogger(__name__)

FALLBACK_PRODUCTS = [
    {
        'id': 1,
        'name': 'RTX 4090 Graphics Card',
        'brand': 'NVIDIA',
        'category': 'Graphics Cards',
        'price': 1899.00,
        'stock_quantity': 5,
        'sku': 'RTX4090-24GB',
        'description': 'High-performance graphics card for gaming and content creation'
    },
    {
        'id': 2,
        'name': 'Intel Core i9-13900K',
        'brand': 'Intel',
        'category': 'Processors',
        'price': 649.99,
        'stock_quantity': 12,
        'sku': 'I9-13900K',
        'description': 'Top-tier gaming and productivity processor'
    },
    {
        'id': 3,
        'name': 'Gaming Laptop ASUS ROG',
        'brand': 'ASUS',
        'category': 'Laptops',
        'price': 2299.99,
        'stock_quantity': 3,
        'sku': 'ASUS-ROG-G15',
        'description': 'High-performance gaming laptop with RTX graphics'
    }
]

FALLBACK_ORDERS = [
    {
        'id': 101,
        'reference_number': 'ORD-2024-001234',
        'phone_number': '+357-99-123456',
        'items': [{'name': 'NVIDIA GeForce RTX 4090 MSI Gaming X Trio 24GB', 'quantity': 1, 'price': 1699.99}],
        'total': 1699.99,
        'status': 'shipped',
        'order_date': '2024-01-15',
        'estimated_delivery': '2024-01-18',
        'tracking_number': 'CY123456789'
    },
    {
        'id': 102,
        'reference_number': 'ORD-2024-001235',
        'phone_number': '+357-99-234567',
        'items': [
            {'name': 'Intel Core i9-13900K', 'quantity': 1, 'price': 589.99},
            {'name': 'ASUS ROG Maximus Z790 Hero', 'quantity': 1, 'price': 499.99}
        ],
        'total': 1089.98,
        'status': 'processing',
        'order_date': '2024-01-16',
        'estimated_delivery': '2024-01-20',
        'tracking_number': None
    }
]

DEMO_CUSTOMER_NAME = 'Demo Customer'
DEMO_CUSTOMER_EMAIL = 'demo@armenius.com.cy'
DEMO_CUSTOMER_PHONE = '+357 99 123456'

# Placeholder schedule: one slot every two hours, 9:00 through 17:00
SLOT_START_HOUR = 9
SLOT_END_HOUR = 17
SLOT_STEP_HOURS = 2
MAX_SLOTS = 5

def _now() -> datetime:
    return datetime.now(timezone.utc)

class FallbackStore(DataStore):
    """In-memory stand-in for the Supabase store.

    Reads are served from a fixed demo catalog. Writes are echoed back to the
    caller and reported to the monitor as degraded writes; nothing is kept.
    """

    mode = StoreMode.FALLBACK

    def __init__(self, monitor: Optional[Monitor] = None, products: Optional[List[Dict[str, Any]]] = None):
        self.monitor = monitor or Monitor()
        self._products = copy.deepcopy(products if products is not None else FALLBACK_PRODUCTS)
        self._id_lock = threading.Lock()
        self._last_id = 0

    def _next_id(self) -> int:
        """Time-based id, strictly increasing within the process"""
        with self._id_lock:
            candidate = int(time.time() * 1000)
            self._last_id = max(candidate, self._last_id + 1)
            return self._last_id

    async def search_products(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        search_term = query.lower()
        matches = [
            product for product in self._products
            if search_term in product['name'].lower()
            or search_term in product['brand'].lower()
            or search_term in product['category'].lower()
        ]
        return [dict(product) for product in matches[:max(limit, 0)]]

    async def search_products_fts(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        # Full-text ranking only exists in the live database
        return await self.search_products(query, limit)

    async def get_product_by_sku_or_name(self, identifier: str) -> Optional[Dict[str, Any]]:
        search_term = identifier.lower()
        for product in self._products:
            if product['sku'].lower() == search_term:
                return dict(product)
        for product in self._products:
            if search_term in product['name'].lower():
                return dict(product)
        return None

    async def check_availability(self, appointment_time: datetime, duration: int = 30) -> bool:
        # No calendar to check against
        return True

    async def create_appointment(self, appointment_data: Dict[str, Any]) -> Dict[str, Any]:
        self.monitor.log_degraded_write('appointment', appointment_data)
        return {
            **appointment_data,
            'id': self._next_id(),
            'status': 'pending',
            'created_at': _now().isoformat()
        }

    async def get_available_slots(self, day: date, service_type: str, duration: int = 30) -> List[datetime]:
        if isinstance(day, datetime):
            base = day.replace(hour=0, minute=0, second=0, microsecond=0)
        else:
            base = datetime(day.year, day.month, day.day)
        slots = [
            base.replace(hour=hour)
            for hour in range(SLOT_START_HOUR, SLOT_END_HOUR + 1, SLOT_STEP_HOURS)
        ]
        return slots[:MAX_SLOTS]

    async def create_conversation(self, vapi_call_id: str, phone_number: Optional[str],
                                  metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.monitor.log_degraded_write('conversation', {'vapi_call_id': vapi_call_id, 'phone_number': phone_number})
        return {
            'id': self._next_id(),
            'vapi_call_id': vapi_call_id,
            'phone_number': phone_number,
            'metadata': metadata or {},
            'created_at': _now().isoformat()
        }

    async def update_conversation(self, vapi_call_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        self.monitor.log_degraded_write('conversation_update', {'vapi_call_id': vapi_call_id, 'updates': updates})
        return {'vapi_call_id': vapi_call_id, **updates}

    async def track_event(self, event_type: str, properties: Optional[Dict[str, Any]] = None,
                          conversation_id: Optional[Any] = None) -> None:
        logger.info(f"Event tracked (fallback mode): {event_type} conversation={conversation_id} properties={properties or {}}")

    async def update_call_cost(self, vapi_call_id: str, cost: float,
                               cost_breakdown: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.monitor.log_degraded_write('call_cost', {'vapi_call_id': vapi_call_id, 'cost': cost})
        return {'vapi_call_id': vapi_call_id, 'cost': cost, 'metadata': {'costs': cost_breakdown or {}}}

    async def get_customer_by_phone(self, phone_number: str) -> Optional[Dict[str, Any]]:
        # Demonstration data only
        return {
            'customer_name': DEMO_CUSTOMER_NAME,
            'customer_email': DEMO_CUSTOMER_EMAIL,
            'phone_number': phone_number,
            'total_orders': 2,
            'total_spent': 1599.98,
            'average_order_value': 799.99,
            'last_order_date': (_now() - timedelta(days=30)).isoformat()
        }

    async def get_customer_order_history(self, phone_number: str, limit: int = 10) -> List[Dict[str, Any]]:
        history = [
            {
                'id': 1,
                'reference_number': 'ORD-2024-001',
                'customer_name': DEMO_CUSTOMER_NAME,
                'phone_number': phone_number,
                'total': 799.99,
                'status': 'delivered',
                'order_date': (_now() - timedelta(days=15)).isoformat()
            }
        ]
        return history[:max(limit, 0)]

    async def search_customers_by_name(self, name: str) -> List[Dict[str, Any]]:
        return [
            {
                'customer_name': DEMO_CUSTOMER_NAME,
                'customer_email': DEMO_CUSTOMER_EMAIL,
                'phone_number': DEMO_CUSTOMER_PHONE
            }
        ]

    async def find_appointments(self, customer_phone: Optional[str] = None, reference: Optional[str] = None,
                                limit: int = 5) -> List[Dict[str, Any]]:
        # Fallback bookings are never kept
        return []

    async def find_orders(self, order_number: Optional[str] = None, tracking_number: Optional[str] = None,
                          limit: int = 5) -> List[Dict[str, Any]]:
        if tracking_number:
            wanted = tracking_number.strip().upper()
            matches = [order for order in FALLBACK_ORDERS if order['tracking_number'] == wanted]
        elif order_number:
            wanted = order_number.strip().lower()
            matches = [order for order in FALLBACK_ORDERS if wanted in order['reference_number'].lower()]
        else:
            matches = []
        return copy.deepcopy(matches[:max(limit, 0)])
