import logging
from typing import Dict, Any, List

from lib.data_access import DataAccess
from .customers import normalize_phone_number
from .messages import format_order_status, message, resolve_language

logger = logging.getLogger(__name__)

class OrderService:
    """Order status and shipment tracking for callers"""

    def __init__(self, data_access: DataAccess):
        self.db = data_access

    @staticmethod
    def _reference(order: Dict[str, Any]) -> str:
        return str(order.get('reference_number') or order.get('id'))

    def _order_summary(self, order: Dict[str, Any], language: str) -> Dict[str, Any]:
        return {
            'id': order.get('id'),
            'reference': self._reference(order),
            'status': order.get('status'),
            'statusText': format_order_status(order.get('status'), language),
            'total': order.get('total'),
            'orderDate': order.get('order_date'),
            'estimatedDelivery': order.get('estimated_delivery'),
            'trackingNumber': order.get('tracking_number'),
            'items': order.get('items')
        }

    def _order_list(self, orders: List[Dict[str, Any]], language: str) -> str:
        return '; '.join(
            message(language, 'order_item',
                    reference=self._reference(order),
                    status=format_order_status(order.get('status'), language),
                    total=order.get('total'))
            for order in orders
        )

    def _single_order_message(self, order: Dict[str, Any], language: str, name: str = None) -> str:
        status = order.get('status')
        values = {
            'reference': self._reference(order),
            'status': format_order_status(status, language),
            'name': name
        }
        text = message(language, 'order_found_named' if name else 'order_found', **values)
        if status == 'shipped' and order.get('tracking_number'):
            text += message(language, 'order_tracking',
                            tracking=order['tracking_number'],
                            delivery=order.get('estimated_delivery') or '-')
        elif status == 'processing':
            text += message(language, 'order_processing')
        elif status == 'delivered':
            text += message(language, 'order_delivered')
        return text

    async def check_order_status(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        order_number = params.get('order_number')
        customer_phone = params.get('customer_phone')
        profile = context.get('customerProfile')
        language = resolve_language(params, context, order_number)

        if not order_number and not customer_phone:
            if not profile:
                return {
                    'found': False,
                    'language': language,
                    'message': message(language, 'need_order_details'),
                    'requiresInput': True
                }
            # Known caller: look up their recent orders without asking
            phone = profile.get('phoneNumber') or context.get('customerNumber')
            orders = await self.db.get_customer_order_history(phone, 3)
            name = profile.get('name')
            if not orders:
                return {
                    'found': False,
                    'language': language,
                    'message': message(language, 'no_customer_orders', name=name)
                }
            return self._orders_result(orders, language, name)

        if order_number:
            orders = await self.db.find_orders(order_number=order_number)
        else:
            orders = await self.db.get_customer_order_history(normalize_phone_number(customer_phone), 5)

        if not orders:
            return {
                'found': False,
                'language': language,
                'message': message(language, 'order_not_found'),
                'searchCriteria': {'order_number': order_number, 'customer_phone': customer_phone}
            }
        return self._orders_result(orders, language)

    def _orders_result(self, orders: List[Dict[str, Any]], language: str, name: str = None) -> Dict[str, Any]:
        if len(orders) == 1:
            return {
                'found': True,
                'language': language,
                'order': self._order_summary(orders[0], language),
                'message': self._single_order_message(orders[0], language, name)
            }
        return {
            'found': True,
            'multipleOrders': True,
            'language': language,
            'orders': [self._order_summary(order, language) for order in orders],
            'message': message(language, 'orders_found', count=len(orders), items=self._order_list(orders, language))
        }

    async def track_order(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        tracking_number = params.get('tracking_number')
        order_number = params.get('order_number')
        language = resolve_language(params, context, tracking_number, order_number)

        if not tracking_number and not order_number:
            return {
                'found': False,
                'language': language,
                'message': message(language, 'need_tracking'),
                'requiresInput': True
            }

        if tracking_number:
            orders = await self.db.find_orders(tracking_number=tracking_number, limit=1)
        else:
            orders = await self.db.find_orders(order_number=order_number, limit=1)

        order = orders[0] if orders else None
        if not order or not order.get('tracking_number'):
            return {
                'found': False,
                'language': language,
                'message': message(language, 'tracking_not_found'),
                'searchTerm': tracking_number or order_number
            }

        status = format_order_status(order.get('status'), language)
        return {
            'found': True,
            'language': language,
            'tracking': {
                'trackingNumber': order['tracking_number'],
                'reference': self._reference(order),
                'status': order.get('status'),
                'statusText': status,
                'estimatedDelivery': order.get('estimated_delivery')
            },
            'message': message(language, 'tracking_found',
                               tracking=order['tracking_number'],
                               status=status.lower(),
                               delivery=order.get('estimated_delivery') or '-')
        }
