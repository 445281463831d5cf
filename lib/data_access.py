"""
Data access facade for the voice assistant.

Callers get one set of operations whether the live Supabase store is
reachable or not. Selection rules:

- No live store (required Supabase settings missing, or the client rejected
  them): every call is served by the fallback store for the life of the
  instance.
- Live store configured: every call goes to it first. If that call raises,
  the failure is reported to the monitor and the same call is answered by
  the fallback store. The next call tries the live store again.

Responses have the same shape in both cases; use ``health()`` to tell them
apart.
"""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Any

from lib.config import Settings, get_settings
from lib.database import SupabaseStore
from lib.fallback_store import FallbackStore
from lib.monitoring import Monitor
from lib.store import DataStore, StoreMode

logger = logging.getLogger(__name__)

class DataAccess:
    def __init__(self, live: Optional[DataStore], fallback: DataStore, monitor: Optional[Monitor] = None,
                 init_error: Optional[str] = None):
        self.live = live
        self.fallback = fallback
        self.monitor = monitor or Monitor()
        self.init_error = init_error

    @property
    def mode(self) -> StoreMode:
        return StoreMode.LIVE if self.live is not None else StoreMode.FALLBACK

    async def _call(self, operation: str, *args, **kwargs):
        if self.live is None:
            return await getattr(self.fallback, operation)(*args, **kwargs)
        try:
            return await getattr(self.live, operation)(*args, **kwargs)
        except Exception as e:
            self.monitor.log_remote_failure(operation, e)
            return await getattr(self.fallback, operation)(*args, **kwargs)

    async def search_products(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        return await self._call('search_products', query, limit)

    async def search_products_fts(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        return await self._call('search_products_fts', query, limit)

    async def get_product_by_sku_or_name(self, identifier: str) -> Optional[Dict[str, Any]]:
        return await self._call('get_product_by_sku_or_name', identifier)

    async def check_availability(self, appointment_time: datetime, duration: int = 30) -> bool:
        return await self._call('check_availability', appointment_time, duration)

    async def create_appointment(self, appointment_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call('create_appointment', appointment_data)

    async def get_available_slots(self, day: date, service_type: str, duration: int = 30) -> List[datetime]:
        return await self._call('get_available_slots', day, service_type, duration)

    async def create_conversation(self, vapi_call_id: str, phone_number: Optional[str],
                                  metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self._call('create_conversation', vapi_call_id, phone_number, metadata)

    async def update_conversation(self, vapi_call_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call('update_conversation', vapi_call_id, updates)

    async def track_event(self, event_type: str, properties: Optional[Dict[str, Any]] = None,
                          conversation_id: Optional[Any] = None) -> None:
        """Fire-and-forget; analytics must never break a call"""
        try:
            await self._call('track_event', event_type, properties, conversation_id)
        except Exception as e:
            logger.error(f"Failed to track event {event_type}: {str(e)}")

    async def update_call_cost(self, vapi_call_id: str, cost: float,
                               cost_breakdown: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self._call('update_call_cost', vapi_call_id, cost, cost_breakdown)

    async def get_customer_by_phone(self, phone_number: str) -> Optional[Dict[str, Any]]:
        return await self._call('get_customer_by_phone', phone_number)

    async def get_customer_order_history(self, phone_number: str, limit: int = 10) -> List[Dict[str, Any]]:
        return await self._call('get_customer_order_history', phone_number, limit)

    async def search_customers_by_name(self, name: str) -> List[Dict[str, Any]]:
        return await self._call('search_customers_by_name', name)

    async def find_appointments(self, customer_phone: Optional[str] = None, reference: Optional[str] = None,
                                limit: int = 5) -> List[Dict[str, Any]]:
        return await self._call('find_appointments', customer_phone, reference, limit)

    async def find_orders(self, order_number: Optional[str] = None, tracking_number: Optional[str] = None,
                          limit: int = 5) -> List[Dict[str, Any]]:
        return await self._call('find_orders', order_number, tracking_number, limit)

    async def health(self) -> Dict[str, Any]:
        """Database status for the health endpoint"""
        report = {
            'mode': self.mode.value,
            'database': 'not configured',
            'monitor': self.monitor.snapshot()
        }
        if self.live is None:
            if self.init_error:
                report['database'] = 'error'
                report['database_error'] = self.init_error
            elif self.monitor.missing_config:
                report['database_error'] = 'Missing environment variables: ' + ' '.join(self.monitor.missing_config)
            return report

        ping = getattr(self.live, 'ping', None)
        if ping is None:
            report['database'] = 'online'
            return report
        try:
            report['database_records'] = await ping()
            report['database'] = 'online'
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}")
            report['database'] = 'error'
            report['database_error'] = str(e)
        return report

def create_data_access(settings: Optional[Settings] = None, monitor: Optional[Monitor] = None) -> DataAccess:
    """Build the facade, choosing the live store when Supabase is configured"""
    settings = settings or get_settings()
    monitor = monitor or Monitor()
    fallback = FallbackStore(monitor=monitor)

    missing = settings.missing_supabase_settings()
    if missing:
        monitor.log_configuration_absent(missing)
        return DataAccess(live=None, fallback=fallback, monitor=monitor)

    try:
        live = SupabaseStore.from_settings(settings)
    except Exception as e:
        logger.error(f"Error initializing Supabase client, using fallback data: {str(e)}")
        return DataAccess(live=None, fallback=fallback, monitor=monitor, init_error=str(e))

    logger.info("Data access using live Supabase store")
    return DataAccess(live=live, fallback=fallback, monitor=monitor)
