import logging
import re
from typing import Dict, Any, Optional

from lib.data_access import DataAccess
from lib.language import detect_language

logger = logging.getLogger(__name__)

VIP_MIN_ORDERS = 5
VIP_MIN_SPENT = 1000.0

def normalize_phone_number(phone_number: Optional[str]) -> str:
    """Normalize Cyprus numbers to +357-XX-XXXXXX, anything else is returned untouched"""
    if not phone_number:
        return ''
    digits = re.sub(r'\D', '', phone_number)
    if digits.startswith('357'):
        return f"+357-{digits[3:5]}-{digits[5:]}"
    if len(digits) == 8:
        return f"+357-{digits[:2]}-{digits[2:]}"
    return phone_number

class CustomerService:
    def __init__(self, data_access: DataAccess):
        self.db = data_access

    async def identify_customer(self, phone_number: Optional[str], conversation_id=None) -> Optional[Dict[str, Any]]:
        """Look up a caller's profile by phone number, trying a few common formats"""
        if not phone_number:
            return None

        normalized = normalize_phone_number(phone_number)
        try:
            customer = await self.db.get_customer_by_phone(normalized)
            if not customer:
                digits = re.sub(r'\D', '', phone_number)
                for candidate in (phone_number, f"+35799{digits[-6:]}", digits, digits[-8:]):
                    customer = await self.db.get_customer_by_phone(candidate)
                    if customer:
                        logger.info(f"Customer found with format: {candidate}")
                        break
            if not customer:
                return None

            history = await self.db.get_customer_order_history(normalized, limit=5)
            profile = self._build_profile(customer, normalized, history)
        except Exception as e:
            logger.error(f"Error identifying customer: {str(e)}")
            await self.db.track_event('customer_identification_failed', {
                'phoneNumber': normalized,
                'error': str(e)
            }, conversation_id)
            return None

        await self.db.track_event('customer_identified', {
            'customerName': profile['name'],
            'phoneNumber': normalized,
            'totalOrders': profile['totalOrders'],
            'totalSpent': profile['totalSpent']
        }, conversation_id)
        return profile

    def _build_profile(self, customer: Dict[str, Any], phone_number: str, history) -> Dict[str, Any]:
        total_orders = int(customer.get('total_orders') or 0)
        total_spent = float(customer.get('total_spent') or 0)
        return {
            'name': customer.get('customer_name'),
            'email': customer.get('customer_email'),
            'phoneNumber': phone_number,
            'totalOrders': total_orders,
            'totalSpent': total_spent,
            'averageOrderValue': float(customer.get('average_order_value') or 0),
            'lastOrderDate': customer.get('last_order_date'),
            'preferredLanguage': detect_language(customer.get('customer_name')),
            'orderHistory': history[:5],
            'isVipCustomer': total_orders >= VIP_MIN_ORDERS or total_spent >= VIP_MIN_SPENT
        }

    @staticmethod
    def get_customer_context(profile: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not profile:
            return {}
        return {
            'name': profile['name'],
            'isReturningCustomer': profile['totalOrders'] > 0,
            'isVipCustomer': profile['isVipCustomer'],
            'preferredLanguage': profile['preferredLanguage'],
            'recentOrders': profile['orderHistory'][:3],
            'canSkipVerification': profile['totalOrders'] > 2
        }

    @staticmethod
    def generate_greeting(profile: Optional[Dict[str, Any]], language: str = 'en') -> Optional[str]:
        if not profile:
            return None
        first_name = (profile.get('name') or '').split(' ')[0]

        if language == 'el':
            if profile['isVipCustomer']:
                return f"Γεια σας {first_name}! Χαίρομαι που σας ακούω πάλι. Πώς μπορώ να σας βοηθήσω σήμερα;"
            if profile['totalOrders'] > 1:
                return f"Καλώς ήρθατε πίσω {first_name}! Πώς μπορώ να σας εξυπηρετήσω σήμερα;"
            return f"Γεια σας {first_name}! Χαίρομαι που επικοινωνείτε μαζί μας στο Armenius Store. Πώς μπορώ να σας βοηθήσω σήμερα;"

        if profile['isVipCustomer']:
            return f"Hello {first_name}! Great to hear from you again. You're one of our most valued customers at Armenius Store. How can I assist you today?"
        if profile['totalOrders'] > 1:
            return f"Welcome back {first_name}! How can I help you today?"
        return f"Hello {first_name}! Thank you for contacting Armenius Store. How can I assist you today?"
