from abc import ABC, abstractmethod
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Any

class StoreMode(str, Enum):
    LIVE = 'live'
    FALLBACK = 'fallback'

class DataStore(ABC):
    """Operations the voice assistant needs from its data source.

    Two variants implement it: the live Supabase store and the in-memory
    fallback store. Records are plain dicts keyed by database column name.
    """

    mode: StoreMode

    # Products
    @abstractmethod
    async def search_products(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def search_products_fts(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def get_product_by_sku_or_name(self, identifier: str) -> Optional[Dict[str, Any]]:
        ...

    # Appointments
    @abstractmethod
    async def check_availability(self, appointment_time: datetime, duration: int = 30) -> bool:
        ...

    @abstractmethod
    async def create_appointment(self, appointment_data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def get_available_slots(self, day: date, service_type: str, duration: int = 30) -> List[datetime]:
        ...

    # Conversations and analytics
    @abstractmethod
    async def create_conversation(self, vapi_call_id: str, phone_number: Optional[str],
                                  metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def update_conversation(self, vapi_call_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def track_event(self, event_type: str, properties: Optional[Dict[str, Any]] = None,
                          conversation_id: Optional[Any] = None) -> None:
        ...

    @abstractmethod
    async def update_call_cost(self, vapi_call_id: str, cost: float,
                               cost_breakdown: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        ...

    # Customers
    @abstractmethod
    async def get_customer_by_phone(self, phone_number: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def get_customer_order_history(self, phone_number: str, limit: int = 10) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def search_customers_by_name(self, name: str) -> List[Dict[str, Any]]:
        ...

    # Lookups for callers checking on earlier bookings and purchases
    @abstractmethod
    async def find_appointments(self, customer_phone: Optional[str] = None, reference: Optional[str] = None,
                                limit: int = 5) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def find_orders(self, order_number: Optional[str] = None, tracking_number: Optional[str] = None,
                          limit: int = 5) -> List[Dict[str, Any]]:
        ...
