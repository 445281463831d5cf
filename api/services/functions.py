import logging
import re
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import pytz
from dateparser.date import DateDataParser
from pydantic import BaseModel

from lib.cache import DEFAULT_TTL, FunctionCache, function_key
from lib.config import Settings, get_settings
from lib.data_access import DataAccess
from lib.error_handler import AppError
from .messages import (
    BOOKING_FIELDS,
    format_date_time,
    format_day,
    message,
    resolve_language,
)
from .orders import OrderService
from .store_info import StoreInfoService

logger = logging.getLogger(__name__)

STORE_TIMEZONE = pytz.timezone('Europe/Nicosia')
DEFAULT_APPOINTMENT_HOUR = 10
DATE_LANGUAGES = ['en', 'el']

def store_now() -> datetime:
    """Current wall-clock time at the store, naive"""
    return datetime.now(STORE_TIMEZONE).replace(tzinfo=None)

def to_store_time(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(STORE_TIMEZONE).replace(tzinfo=None)

def normalize_search_term(term: str) -> str:
    term = re.sub(r'[^\w\s-]', ' ', term.lower())
    return re.sub(r'\s+', ' ', term).strip()

def parse_date_time(value: str, now: datetime) -> Optional[datetime]:
    """Turn a caller's preferred date into store-local time.

    ISO strings are taken as given. Anything else goes through dateparser
    in English and Greek, relative to ``now``. A date without a time gets
    10:00. Returns None when nothing can be made of the text.
    """
    text = (value or '').strip()
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        parsed = None
    if parsed is not None:
        if len(text) <= 10:
            parsed = parsed.replace(hour=DEFAULT_APPOINTMENT_HOUR)
        return to_store_time(parsed)

    parser = DateDataParser(languages=DATE_LANGUAGES, settings={
        'RELATIVE_BASE': now,
        'PREFER_DATES_FROM': 'future',
        'RETURN_TIME_AS_PERIOD': True,
        'DATE_ORDER': 'DMY'
    })
    data = parser.get_date_data(text)
    if data.date_obj is None:
        logger.info(f"Could not parse date: {text}")
        return None

    moment = to_store_time(data.date_obj)
    if data.period != 'time':
        moment = moment.replace(hour=DEFAULT_APPOINTMENT_HOUR, minute=0, second=0, microsecond=0)
    return moment.replace(microsecond=0)

def next_business_day(now: datetime) -> datetime:
    day = now + timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day.replace(hour=DEFAULT_APPOINTMENT_HOUR, minute=0, second=0, microsecond=0)

def is_business_hours(moment: datetime) -> bool:
    # Monday-Friday 9-19, Saturday 9-14, Sunday closed, store-local time
    moment = to_store_time(moment)
    weekday = moment.weekday()
    if weekday < 5:
        return 9 <= moment.hour < 19
    if weekday == 5:
        return 9 <= moment.hour < 14
    return False

def _as_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    if isinstance(value, datetime):
        return to_store_time(value)
    if not value:
        return None
    try:
        return to_store_time(datetime.fromisoformat(str(value).replace('Z', '+00:00')))
    except ValueError:
        return None

class FunctionSpec(BaseModel):
    handler: Callable[..., Awaitable[Dict[str, Any]]]
    fallback: str
    # seconds; 0 disables caching
    ttl: int = DEFAULT_TTL

    @property
    def cacheable(self) -> bool:
        return self.ttl > 0

class FunctionService:
    """Tool functions the voice assistant can call during a conversation"""

    def __init__(self, data_access: DataAccess, customer_service=None, settings: Optional[Settings] = None,
                 cache: Optional[FunctionCache] = None, clock: Callable[[], datetime] = store_now):
        self.db = data_access
        self.customer_service = customer_service
        self.settings = settings or get_settings()
        self.cache = cache or FunctionCache()
        self.clock = clock
        self.store_info = StoreInfoService(self.settings)
        self.orders = OrderService(data_access)
        self.calls: Counter = Counter()
        self.errors: Counter = Counter()
        self.cache_hits: Counter = Counter()

        phone = self.settings.store_phone
        self.functions: Dict[str, FunctionSpec] = {
            'checkInventory': FunctionSpec(
                handler=self.check_inventory,
                ttl=300,
                fallback="I'm having trouble with our systems right now. You can visit armenius.com.cy "
                         f"or call us at {phone}. I can also book you an appointment for personalized service."
            ),
            'getProductPrice': FunctionSpec(
                handler=self.get_product_price,
                ttl=180,
                fallback=f"I'm having trouble accessing our current pricing. Please call us at {phone} for the latest prices."
            ),
            'bookAppointment': FunctionSpec(
                handler=self.book_appointment,
                ttl=0,
                fallback=f"I'm having trouble with our booking system. Please call us directly at {phone} to schedule your appointment."
            ),
            'getAvailableSlots': FunctionSpec(
                handler=self.get_available_slots,
                ttl=0,
                fallback=f"I'm having trouble checking appointments right now. Please call us at {phone}."
            ),
            'checkAppointment': FunctionSpec(
                handler=self.check_appointment,
                ttl=0,
                fallback=f"I'm having trouble checking appointments right now. Please call us at {phone}."
            ),
            'identifyCustomer': FunctionSpec(
                handler=self.identify_customer,
                ttl=0,
                fallback="I couldn't look up your account right now, but I'm happy to help with your request."
            ),
            'getStoreInfo': FunctionSpec(
                handler=self.store_info.get_store_info,
                ttl=86400,
                fallback=f"You can reach us at {phone} or visit us at {self.settings.store_address}."
            ),
            'getDirections': FunctionSpec(
                handler=self.store_info.get_directions,
                ttl=86400,
                fallback=f"We are located at {self.settings.store_address}. You can find us near the city center."
            ),
            'checkOrderStatus': FunctionSpec(
                handler=self.orders.check_order_status,
                ttl=0,
                fallback=f"I'm having trouble accessing our order system right now. "
                         f"Please call us at {phone} with your order number."
            ),
            'trackOrder': FunctionSpec(
                handler=self.orders.track_order,
                ttl=300,
                fallback=f"I'm having trouble accessing tracking information. "
                         f"Please call us at {phone} or check with the courier directly."
            ),
        }

    def fallback_response(self, name: str) -> str:
        spec = self.functions.get(name)
        if spec:
            return spec.fallback
        return f"I'm having trouble with that request. Please try again or call us directly at {self.settings.store_phone}."

    async def execute(self, name: str, parameters: Optional[Dict[str, Any]], context: Dict[str, Any]) -> Dict[str, Any]:
        spec = self.functions.get(name)
        if spec is None:
            raise AppError(f"Unknown function: {name}", status_code=404)
        self.calls[name] += 1
        params = parameters or {}

        cache_key = function_key(name, params) if spec.cacheable else None
        if cache_key:
            cached = self.cache.get(cache_key)
            if cached is not None:
                result, tier = cached
                self.cache_hits[name] += 1
                logger.info(f"Cache hit for {name} ({tier})")
                await self.db.track_event('cache_hit', {
                    'function': name,
                    'parameters': params,
                    'cacheKey': cache_key,
                    'tier': tier
                }, context.get('conversationId'))
                return result

        logger.info(f"Executing function: {name} {params}")
        try:
            result = await spec.handler(params, context)
        except Exception:
            self.errors[name] += 1
            raise

        if cache_key and not result.get('error') and not result.get('requiresInput'):
            self.cache.set(cache_key, result, spec.ttl)
        return result

    def get_stats(self) -> Dict[str, Any]:
        return {
            'registered': sorted(self.functions),
            'calls': dict(self.calls),
            'errors': dict(self.errors),
            'cacheHits': dict(self.cache_hits),
            'cache': self.cache.snapshot()
        }

    @staticmethod
    def _product_summary(product: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'name': product.get('name'),
            'sku': product.get('sku'),
            'brand': product.get('brand'),
            'price': float(product.get('price') or 0),
            'stock': int(product.get('stock_quantity') or 0)
        }

    async def check_inventory(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        search_term = params.get('product_name') or params.get('product_sku')
        language = resolve_language(params, context, search_term)
        if not search_term:
            return {
                'available': False,
                'language': language,
                'message': message(language, 'need_product'),
                'requiresInput': True
            }

        if params.get('product_sku'):
            product = await self.db.get_product_by_sku_or_name(params['product_sku'])
            products = [product] if product else []
        else:
            products = await self.db.search_products(normalize_search_term(search_term), 5)

        if not products:
            return {
                'available': False,
                'language': language,
                'message': message(language, 'product_not_found', term=search_term),
                'searchTerm': search_term
            }

        product = products[0]
        stock = int(product.get('stock_quantity') or 0)
        if stock > 0:
            text = message(language, 'in_stock', name=product['name'], price=float(product['price']), stock=stock)
        else:
            text = message(language, 'out_of_stock', name=product['name'])
        return {
            'available': stock > 0,
            'language': language,
            'message': text,
            'product': self._product_summary(product),
            'alternatives': [self._product_summary(p) for p in products[1:3]]
        }

    async def get_product_price(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        identifier = params.get('product_identifier')
        language = resolve_language(params, context, identifier)
        if not identifier:
            return {
                'error': True,
                'language': language,
                'message': message(language, 'need_price_product'),
                'requiresInput': True
            }
        quantity = max(int(params.get('quantity') or 1), 1)

        products = await self.db.search_products(identifier, 3)
        if not products:
            product = await self.db.get_product_by_sku_or_name(identifier)
            products = [product] if product else []
        if not products:
            return {
                'found': False,
                'language': language,
                'message': message(language, 'price_not_found', term=identifier),
                'searchTerm': identifier
            }

        if len(products) > 1:
            options = ', '.join(
                message(language, 'price_option', name=p['name'], price=float(p['price'])) for p in products
            )
            return {
                'found': True,
                'multipleResults': True,
                'language': language,
                'message': message(language, 'multiple_products', options=options),
                'products': [self._product_summary(p) for p in products]
            }

        product = products[0]
        price = float(product['price'])
        discount = 0.0
        if quantity >= 10:
            discount = 0.10
        elif quantity >= 5:
            discount = 0.05
        unit_price = round(price * (1 - discount), 2)
        total_price = round(unit_price * quantity, 2)

        if quantity > 1:
            text = message(language, 'price_quantity', name=product['name'], unit_price=unit_price,
                           total_price=total_price, quantity=quantity)
            if discount:
                text += message(language, 'price_discount', percent=int(discount * 100), quantity=quantity)
        else:
            text = message(language, 'price_single', name=product['name'], unit_price=unit_price)

        return {
            'found': True,
            'language': language,
            'product': self._product_summary(product),
            'quantity': quantity,
            'discount': discount,
            'unitPrice': unit_price,
            'totalPrice': total_price,
            'message': text
        }

    async def book_appointment(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        profile = context.get('customerProfile') or {}
        service_type = params.get('service_type')
        preferred_date = params.get('preferred_date')
        customer_phone = params.get('customer_phone') or context.get('customerNumber')
        customer_name = params.get('customer_name') or profile.get('name') or 'Phone Customer'
        language = resolve_language(params, context, service_type, preferred_date, params.get('customer_name'))

        missing = [field for field in ('service_type', 'preferred_date') if not params.get(field)]
        if missing:
            fields = message(language, 'fields_joiner').join(BOOKING_FIELDS[language][field] for field in missing)
            return {
                'booked': False,
                'language': language,
                'message': message(language, 'need_fields', fields=fields),
                'requiresInput': True
            }
        if not customer_phone:
            return {
                'booked': False,
                'language': language,
                'message': message(language, 'need_phone'),
                'requiresInput': True
            }

        appointment_time = parse_date_time(preferred_date, self.clock())
        if appointment_time is None:
            return {
                'booked': False,
                'language': language,
                'message': message(language, 'unparsed_date', value=preferred_date),
                'requiresInput': True
            }

        if not is_business_hours(appointment_time):
            alternatives = await self.db.get_available_slots(next_business_day(appointment_time), service_type)
            reason = message(language, 'outside_hours', when=format_date_time(appointment_time, language))
            return self._alternatives_response(reason, alternatives, language)

        if not await self.db.check_availability(appointment_time):
            alternatives = await self.db.get_available_slots(appointment_time.date(), service_type)
            reason = message(language, 'already_booked', when=format_date_time(appointment_time, language))
            return self._alternatives_response(reason, alternatives, language)

        is_vip = bool(profile.get('isVipCustomer'))
        appointment = await self.db.create_appointment({
            'service_type': service_type,
            'appointment_time': appointment_time.isoformat(),
            'customer_phone': customer_phone,
            'customer_name': customer_name,
            'customer_email': profile.get('email'),
            'status': 'confirmed',
            'created_via': 'voice_ai',
            'conversation_id': context.get('conversationId'),
            'notes': 'VIP Customer - Priority Service' if is_vip else None
        })
        status = appointment.get('status')
        text = message(language, 'booked_vip' if is_vip else 'booked',
                       name=customer_name,
                       service=service_type,
                       when=format_date_time(appointment_time, language),
                       reference=str(appointment['id'])[-8:])
        if status == 'pending':
            text += message(language, 'booked_pending')

        return {
            'booked': True,
            'language': language,
            'appointment': {
                'id': appointment['id'],
                'status': status,
                'serviceType': service_type,
                'dateTime': appointment_time.isoformat(),
                'customerName': customer_name,
                'customerPhone': customer_phone,
                'isVip': is_vip
            },
            'message': text
        }

    @staticmethod
    def _alternatives_response(reason: str, alternatives: List[datetime], language: str) -> Dict[str, Any]:
        if alternatives:
            offered = message(language, 'or').join(format_date_time(slot, language) for slot in alternatives[:2])
            text = message(language, 'offer_alternatives', reason=reason, offered=offered)
        else:
            text = message(language, 'no_alternatives', reason=reason)
        return {
            'booked': False,
            'language': language,
            'message': text,
            'alternatives': [slot.isoformat() for slot in alternatives[:3]]
        }

    async def get_available_slots(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        requested = params.get('date')
        service_type = params.get('service_type') or 'consultation'
        duration = int(params.get('duration') or 30)
        language = resolve_language(params, context, requested, params.get('service_type'))

        if requested:
            day = parse_date_time(requested, self.clock())
            if day is None:
                return {
                    'slots': [],
                    'language': language,
                    'message': message(language, 'unparsed_date', value=requested),
                    'requiresInput': True
                }
        else:
            day = next_business_day(self.clock())

        slots = await self.db.get_available_slots(day.date(), service_type, duration)
        if not slots:
            return {
                'slots': [],
                'language': language,
                'message': message(language, 'no_slots', day=format_day(day, language))
            }
        return {
            'slots': [slot.isoformat() for slot in slots],
            'language': language,
            'message': message(language, 'slots', day=format_day(day, language),
                               times=', '.join(slot.strftime('%H:%M') for slot in slots))
        }

    async def check_appointment(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        reference = params.get('appointment_reference')
        customer_phone = params.get('customer_phone') or context.get('customerNumber')
        language = resolve_language(params, context, reference)

        if not reference and not customer_phone:
            return {
                'found': False,
                'language': language,
                'message': message(language, 'need_appointment_details'),
                'requiresInput': True
            }

        appointments = await self.db.find_appointments(customer_phone=customer_phone, reference=reference)
        if not appointments:
            return {
                'found': False,
                'language': language,
                'message': message(language, 'appointment_not_found')
            }

        summaries = []
        for appointment in appointments:
            moment = _as_datetime(appointment.get('appointment_time'))
            summaries.append({
                'id': appointment.get('id'),
                'serviceType': appointment.get('service_type'),
                'dateTime': moment.isoformat() if moment else None,
                'when': format_date_time(moment, language) if moment else appointment.get('appointment_time'),
                'status': appointment.get('status'),
                'customerName': appointment.get('customer_name')
            })

        if len(summaries) == 1:
            found = summaries[0]
            return {
                'found': True,
                'language': language,
                'appointment': found,
                'message': message(language, 'appointment_found', service=found['serviceType'],
                                   when=found['when'], status=found['status'])
            }

        items = '; '.join(
            message(language, 'appointment_item', service=s['serviceType'], when=s['when'], status=s['status'])
            for s in summaries
        )
        return {
            'found': True,
            'multipleAppointments': True,
            'language': language,
            'appointments': summaries,
            'message': message(language, 'appointments_found', count=len(summaries), items=items)
        }

    async def identify_customer(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        profile = context.get('customerProfile')
        if profile is None and self.customer_service is not None:
            phone = params.get('phone_number') or context.get('customerNumber')
            profile = await self.customer_service.identify_customer(phone, context.get('conversationId'))
        if not profile:
            language = resolve_language(params, context)
            return {
                'identified': False,
                'language': language,
                'message': message(language, 'customer_not_found')
            }
        language = resolve_language(params, {'customerProfile': profile})
        return {
            'identified': True,
            'language': language,
            'customer': {
                'name': profile['name'],
                'totalOrders': profile['totalOrders'],
                'isVip': profile['isVipCustomer']
            },
            'message': message(language, 'customer_found', name=profile['name'], orders=profile['totalOrders'])
        }
