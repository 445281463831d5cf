import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Any
from supabase import create_client, Client, ClientOptions

from lib.config import Settings
from lib.error_handler import DatabaseError
from lib.store import DataStore, StoreMode

logger = logging.getLogger(__name__)

BUSINESS_START_HOUR = 9
BUSINESS_END_HOUR = 17
MAX_SLOTS = 5
DEFAULT_SLOT_MINUTES = 30
BLOCKING_STATUSES = ['confirmed', 'pending']

def _filter_value(value: str) -> str:
    """Strip characters that would break a PostgREST or() filter"""
    return ''.join(ch for ch in value if ch not in ',()').strip()

class SupabaseStore(DataStore):
    mode = StoreMode.LIVE

    def __init__(self, supabase: Client, supabase_admin: Optional[Client] = None):
        # Public client runs under RLS, admin client (service key) bypasses it
        self.supabase = supabase
        self.supabase_admin = supabase_admin or supabase
        self.products_table = 'products'
        self.conversations_table = 'conversations'
        self.appointments_table = 'appointments'
        self.events_table = 'analytics_events'
        self.orders_table = 'orders'
        self.customer_view = 'customer_order_summary'

    @classmethod
    def from_settings(cls, settings: Settings) -> 'SupabaseStore':
        supabase = create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
            options=ClientOptions(auto_refresh_token=True, persist_session=False)
        )
        supabase_admin = create_client(
            settings.supabase_url,
            settings.supabase_service_key or settings.supabase_anon_key,
            options=ClientOptions(auto_refresh_token=False, persist_session=False)
        )
        logger.info(f"Supabase clients initialized (service key: {bool(settings.supabase_service_key)})")
        return cls(supabase, supabase_admin)

    async def ping(self) -> int:
        """Cheapest possible round trip, used by the health check"""
        try:
            response = self.supabase.table(self.products_table).select('id').limit(1).execute()
            return len(response.data or [])
        except Exception as e:
            raise DatabaseError(f"Database health check failed: {str(e)}", code=getattr(e, 'code', None))

    async def search_products(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        try:
            term = _filter_value(query)
            response = self.supabase.table(self.products_table)\
                .select('*')\
                .or_(f"name.ilike.%{term}%,brand.ilike.%{term}%,category.ilike.%{term}%")\
                .gt('stock_quantity', 0)\
                .order('stock_quantity', desc=True)\
                .limit(limit)\
                .execute()
            return response.data or []
        except Exception as e:
            raise DatabaseError(f"Product search error: {str(e)}", code=getattr(e, 'code', None))

    async def search_products_fts(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        try:
            response = self.supabase.rpc(
                'search_products_fts',
                {'search_query': query, 'result_limit': limit}
            ).execute()
            return response.data or []
        except Exception as e:
            raise DatabaseError(f"Full-text product search error: {str(e)}", code=getattr(e, 'code', None))

    async def get_product_by_sku_or_name(self, identifier: str) -> Optional[Dict[str, Any]]:
        try:
            term = _filter_value(identifier)
            response = self.supabase.table(self.products_table)\
                .select('*')\
                .or_(f"sku.ilike.{term},name.ilike.%{term}%")\
                .execute()
            rows = response.data or []
        except Exception as e:
            raise DatabaseError(f"Product lookup error: {str(e)}", code=getattr(e, 'code', None))

        for row in rows:
            if str(row.get('sku', '')).lower() == identifier.lower():
                return row
        return rows[0] if rows else None

    async def create_conversation(self, vapi_call_id: str, phone_number: Optional[str],
                                  metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            record = {
                'vapi_call_id': vapi_call_id,
                'phone_number': phone_number,
                'metadata': metadata or {}
            }
            response = self.supabase_admin.table(self.conversations_table).insert(record).execute()
            return response.data[0]
        except Exception as e:
            raise DatabaseError(f"Conversation create error: {str(e)}", code=getattr(e, 'code', None))

    async def update_conversation(self, vapi_call_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.supabase_admin.table(self.conversations_table)\
                .update(updates)\
                .eq('vapi_call_id', vapi_call_id)\
                .execute()
            if not response.data:
                raise DatabaseError(f"No conversation for call {vapi_call_id}", code='PGRST116')
            return response.data[0]
        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Conversation update error: {str(e)}", code=getattr(e, 'code', None))

    async def check_availability(self, appointment_time: datetime, duration: int = 30) -> bool:
        end_time = appointment_time + timedelta(minutes=duration)
        try:
            response = self.supabase.table(self.appointments_table)\
                .select('id')\
                .gte('appointment_time', appointment_time.isoformat())\
                .lt('appointment_time', end_time.isoformat())\
                .in_('status', BLOCKING_STATUSES)\
                .limit(1)\
                .execute()
            return len(response.data or []) == 0
        except Exception as e:
            raise DatabaseError(f"Availability check error: {str(e)}", code=getattr(e, 'code', None))

    async def create_appointment(self, appointment_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.supabase_admin.table(self.appointments_table).insert(appointment_data).execute()
            return response.data[0]
        except Exception as e:
            raise DatabaseError(f"Appointment create error: {str(e)}", code=getattr(e, 'code', None))

    async def get_available_slots(self, day: date, service_type: str, duration: int = 30) -> List[datetime]:
        if isinstance(day, datetime):
            base = day.replace(hour=0, minute=0, second=0, microsecond=0)
        else:
            base = datetime(day.year, day.month, day.day)

        if duration <= 0:
            duration = DEFAULT_SLOT_MINUTES
        step = timedelta(minutes=duration)
        slot_time = base.replace(hour=BUSINESS_START_HOUR)
        closing = base.replace(hour=BUSINESS_END_HOUR)

        slots = []
        while slot_time + step <= closing and len(slots) < MAX_SLOTS:
            if await self.check_availability(slot_time, duration):
                slots.append(slot_time)
            slot_time += step
        return slots

    async def track_event(self, event_type: str, properties: Optional[Dict[str, Any]] = None,
                          conversation_id: Optional[Any] = None) -> None:
        try:
            self.supabase_admin.table(self.events_table).insert({
                'event_type': event_type,
                'conversation_id': conversation_id,
                'properties': properties or {}
            }).execute()
        except Exception as e:
            logger.error(f"Failed to track event {event_type}: {str(e)}")

    async def update_call_cost(self, vapi_call_id: str, cost: float,
                               cost_breakdown: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.update_conversation(vapi_call_id, {
            'cost': cost,
            'metadata': {'costs': cost_breakdown or {}}
        })

    async def get_customer_by_phone(self, phone_number: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.supabase.table(self.customer_view)\
                .select('*')\
                .eq('phone_number', phone_number)\
                .limit(1)\
                .execute()
            if response.data:
                return response.data[0]
        except Exception as e:
            logger.warning(f"Customer summary view unavailable, aggregating orders: {str(e)}")

        return await self._customer_from_orders(phone_number)

    async def _customer_from_orders(self, phone_number: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.supabase.table(self.orders_table)\
                .select('customer_name, customer_email, phone_number, total, order_date')\
                .eq('phone_number', phone_number)\
                .order('order_date', desc=True)\
                .execute()
        except Exception as e:
            raise DatabaseError(f"Customer lookup error: {str(e)}", code=getattr(e, 'code', None))

        orders = response.data or []
        if not orders:
            return None

        latest = orders[0]
        total_orders = len(orders)
        total_spent = sum(float(order.get('total') or 0) for order in orders)
        return {
            'customer_name': latest.get('customer_name'),
            'customer_email': latest.get('customer_email'),
            'phone_number': latest.get('phone_number'),
            'total_orders': total_orders,
            'total_spent': total_spent,
            'average_order_value': total_spent / total_orders,
            'last_order_date': latest.get('order_date')
        }

    async def get_customer_order_history(self, phone_number: str, limit: int = 10) -> List[Dict[str, Any]]:
        try:
            response = self.supabase.table(self.orders_table)\
                .select('*')\
                .eq('phone_number', phone_number)\
                .order('order_date', desc=True)\
                .limit(limit)\
                .execute()
            return response.data or []
        except Exception as e:
            raise DatabaseError(f"Order history error: {str(e)}", code=getattr(e, 'code', None))

    async def search_customers_by_name(self, name: str) -> List[Dict[str, Any]]:
        try:
            response = self.supabase.table(self.orders_table)\
                .select('customer_name, customer_email, phone_number')\
                .ilike('customer_name', f"%{name}%")\
                .limit(50)\
                .execute()
        except Exception as e:
            raise DatabaseError(f"Customer search error: {str(e)}", code=getattr(e, 'code', None))

        # PostgREST has no GROUP BY, dedupe client-side
        customers = []
        seen = set()
        for row in response.data or []:
            key = (row.get('customer_name'), row.get('customer_email'), row.get('phone_number'))
            if key in seen:
                continue
            seen.add(key)
            customers.append(row)
        return customers[:10]

    async def find_appointments(self, customer_phone: Optional[str] = None, reference: Optional[str] = None,
                                limit: int = 5) -> List[Dict[str, Any]]:
        """Upcoming confirmed or pending appointments, by reference fragment or phone number"""
        try:
            query = self.supabase.table(self.appointments_table)\
                .select('*')\
                .in_('status', BLOCKING_STATUSES)
            if reference:
                query = query.ilike('id', f"%{_filter_value(reference)}%")
            elif customer_phone:
                query = query.eq('customer_phone', customer_phone)
            response = query.order('appointment_time').limit(limit).execute()
            return response.data or []
        except Exception as e:
            raise DatabaseError(f"Appointment lookup error: {str(e)}", code=getattr(e, 'code', None))

    async def find_orders(self, order_number: Optional[str] = None, tracking_number: Optional[str] = None,
                          limit: int = 5) -> List[Dict[str, Any]]:
        try:
            query = self.supabase.table(self.orders_table).select('*')
            if tracking_number:
                query = query.eq('tracking_number', tracking_number.strip().upper())
            elif order_number:
                query = query.ilike('reference_number', f"%{_filter_value(order_number)}%")
            response = query.order('order_date', desc=True).limit(limit).execute()
            return response.data or []
        except Exception as e:
            raise DatabaseError(f"Order lookup error: {str(e)}", code=getattr(e, 'code', None))
