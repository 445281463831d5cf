"""Spoken replies for the tool functions, in English and Greek"""

from datetime import datetime
from typing import Any, Dict, Optional

from lib.language import detect_language

SUPPORTED_LANGUAGES = ('en', 'el')

DAYS = {
    'en': ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday'],
    'el': ['Δευτέρα', 'Τρίτη', 'Τετάρτη', 'Πέμπτη', 'Παρασκευή', 'Σάββατο', 'Κυριακή'],
}

MONTHS = {
    'en': ['January', 'February', 'March', 'April', 'May', 'June', 'July',
           'August', 'September', 'October', 'November', 'December'],
    # genitive, as used in dates
    'el': ['Ιανουαρίου', 'Φεβρουαρίου', 'Μαρτίου', 'Απριλίου', 'Μαΐου', 'Ιουνίου', 'Ιουλίου',
           'Αυγούστου', 'Σεπτεμβρίου', 'Οκτωβρίου', 'Νοεμβρίου', 'Δεκεμβρίου'],
}

ORDER_STATUS = {
    'en': {
        'pending': 'Pending Payment',
        'paid': 'Paid - Processing',
        'processing': 'Being Prepared',
        'shipped': 'Shipped',
        'delivered': 'Delivered',
        'cancelled': 'Cancelled',
        'refunded': 'Refunded',
    },
    'el': {
        'pending': 'Εκκρεμεί Πληρωμή',
        'paid': 'Πληρωμένο - Επεξεργασία',
        'processing': 'Προετοιμάζεται',
        'shipped': 'Στάλθηκε',
        'delivered': 'Παραδόθηκε',
        'cancelled': 'Ακυρώθηκε',
        'refunded': 'Επιστράφηκε',
    },
}

BOOKING_FIELDS = {
    'en': {'service_type': 'service type', 'preferred_date': 'preferred date'},
    'el': {'service_type': 'το είδος της υπηρεσίας', 'preferred_date': 'την ημερομηνία που προτιμάτε'},
}

MESSAGES = {
    'en': {
        # inventory
        'need_product': 'I need a product name or SKU to check inventory. What product are you looking for?',
        'product_not_found': 'I couldn\'t find "{term}" in our catalog. Could you give me more details?',
        'in_stock': 'Yes, we have the {name} in stock for €{price:.2f}. We have {stock} available.',
        'out_of_stock': 'The {name} is currently out of stock. Would you like me to suggest an alternative?',
        # pricing
        'need_price_product': 'I need a product name or SKU to check pricing. What product are you interested in?',
        'price_not_found': 'I couldn\'t find "{term}" in our catalog. Can you provide more details?',
        'multiple_products': 'I found several products: {options}. Which one are you interested in?',
        'price_option': '{name} at €{price:.2f}',
        'price_single': 'The {name} is €{unit_price:.2f}.',
        'price_quantity': 'The {name} is €{unit_price:.2f} each, €{total_price:.2f} for {quantity}.',
        'price_discount': ' That includes a {percent}% discount for {quantity} items.',
        # appointments
        'need_fields': 'I need the {fields} to book your appointment.',
        'fields_joiner': ' and ',
        'need_phone': 'I need your phone number to confirm the appointment.',
        'unparsed_date': 'I didn\'t catch the date "{value}". Which day and time would suit you?',
        'outside_hours': 'The time you requested ({when}) is outside our opening hours.',
        'already_booked': '{when} is already booked.',
        'offer_alternatives': '{reason} I have availability on {offered}. Which works better for you?',
        'no_alternatives': '{reason} Could you suggest another day?',
        'or': ' or ',
        'booked': 'Perfect! I\'ve booked your {service} appointment for {when}. Your appointment reference is {reference}.',
        'booked_vip': 'Perfect {name}! I\'ve booked your VIP {service} appointment for {when}. '
                      'As a VIP customer, you\'ll receive priority service. Your appointment reference is {reference}.',
        'booked_pending': ' We will call you to confirm it.',
        'no_slots': 'I don\'t have any free slots on {day}. Would another day work?',
        'slots': 'I have openings on {day} at {times}.',
        'need_appointment_details': 'I need either your phone number or appointment reference to check your appointment.',
        'appointment_not_found': 'I couldn\'t find any appointments with those details. Would you like to book a new appointment?',
        'appointment_found': 'I found your {service} appointment on {when}. The status is "{status}". Do you need anything else?',
        'appointments_found': 'I found {count} appointments: {items}. Which one would you like more information about?',
        'appointment_item': '{service} on {when} ({status})',
        # customers
        'customer_not_found': 'I couldn\'t find an account with that phone number. Can I have your name?',
        'customer_found': 'I found your account, {name}. You have {orders} orders with us.',
        # orders
        'need_order_details': 'I need either your order number or phone number to check your order status. '
                              'What information can you provide?',
        'order_not_found': 'I couldn\'t find any orders with those details. Please check your order number or phone number.',
        'no_customer_orders': '{name}, I don\'t see any orders for you in our system.',
        'order_found': 'I found your order {reference}. Status: {status}.',
        'order_found_named': '{name}, I found your order {reference}. Status: {status}.',
        'order_tracking': ' Tracking number: {tracking}. Estimated delivery: {delivery}.',
        'order_processing': ' Your order is being prepared and will ship soon.',
        'order_delivered': ' Your order has been delivered successfully!',
        'orders_found': 'I found {count} orders: {items}. Which one would you like more information about?',
        'order_item': '{reference} - {status} (€{total})',
        'need_tracking': 'I need a tracking number or order number to provide tracking information.',
        'tracking_not_found': 'I couldn\'t find tracking information for that number. The order may not have shipped yet.',
        'tracking_found': 'Your package with tracking number {tracking} is {status}. Estimated delivery: {delivery}.',
    },
    'el': {
        'need_product': 'Χρειάζομαι το όνομα ή τον κωδικό του προϊόντος για να ελέγξω το απόθεμα. Ποιο προϊόν ψάχνετε;',
        'product_not_found': 'Δεν βρήκα "{term}" στον κατάλογό μας. Μπορείτε να μου δώσετε περισσότερες λεπτομέρειες;',
        'in_stock': 'Ναι, έχουμε το {name} σε απόθεμα στην τιμή των €{price:.2f}. Υπάρχουν {stock} διαθέσιμα.',
        'out_of_stock': 'Το {name} δεν είναι διαθέσιμο αυτή τη στιγμή. Θέλετε να σας προτείνω κάτι παρόμοιο;',
        'need_price_product': 'Χρειάζομαι το όνομα ή τον κωδικό του προϊόντος για να σας πω την τιμή. Ποιο προϊόν σας ενδιαφέρει;',
        'price_not_found': 'Δεν βρήκα "{term}" στον κατάλογό μας. Μπορείτε να μου δώσετε περισσότερες λεπτομέρειες;',
        'multiple_products': 'Βρήκα αρκετά προϊόντα: {options}. Ποιο σας ενδιαφέρει;',
        'price_option': '{name} στα €{price:.2f}',
        'price_single': 'Το {name} κοστίζει €{unit_price:.2f}.',
        'price_quantity': 'Το {name} κοστίζει €{unit_price:.2f} το τεμάχιο, €{total_price:.2f} για {quantity}.',
        'price_discount': ' Περιλαμβάνεται έκπτωση {percent}% για {quantity} τεμάχια.',
        'need_fields': 'Χρειάζομαι {fields} για να κλείσω το ραντεβού σας.',
        'fields_joiner': ' και ',
        'need_phone': 'Χρειάζομαι τον αριθμό τηλεφώνου σας για επιβεβαίωση του ραντεβού.',
        'unparsed_date': 'Δεν κατάλαβα την ημερομηνία "{value}". Ποια μέρα και ώρα σας βολεύει;',
        'outside_hours': 'Η ώρα που ζητήσατε ({when}) είναι εκτός ωραρίου λειτουργίας.',
        'already_booked': 'Η {when} είναι κλεισμένη.',
        'offer_alternatives': '{reason} Έχω διαθεσιμότητα στις {offered}. Ποια σας βολεύει περισσότερο;',
        'no_alternatives': '{reason} Μπορείτε να μου προτείνετε άλλη μέρα;',
        'or': ' ή ',
        'booked': 'Τέλεια! Κλείσαμε το ραντεβού σας για {service} στις {when}. Κωδικός ραντεβού: {reference}.',
        'booked_vip': 'Τέλεια {name}! Κλείσαμε το VIP ραντεβού σας για {service} στις {when}. '
                      'Ως VIP πελάτης, θα έχετε προτεραιότητα στην εξυπηρέτηση. Κωδικός ραντεβού: {reference}.',
        'booked_pending': ' Θα σας καλέσουμε για επιβεβαίωση.',
        'no_slots': 'Δεν έχω ελεύθερα ραντεβού την {day}. Σας βολεύει άλλη μέρα;',
        'slots': 'Έχω διαθεσιμότητα την {day} στις {times}.',
        'need_appointment_details': 'Χρειάζομαι τον αριθμό τηλεφώνου σας ή τον κωδικό του ραντεβού για να το ελέγξω.',
        'appointment_not_found': 'Δεν βρήκα κανένα ραντεβού με αυτά τα στοιχεία. Μήπως θέλετε να κλείσετε ένα νέο ραντεβού;',
        'appointment_found': 'Βρήκα το ραντεβού σας για {service} στις {when}. Η κατάσταση είναι "{status}". Χρειάζεστε κάτι άλλο;',
        'appointments_found': 'Βρήκα {count} ραντεβού: {items}. Για ποιο θέλετε περισσότερες πληροφορίες;',
        'appointment_item': '{service} στις {when} ({status})',
        'customer_not_found': 'Δεν βρήκα λογαριασμό με αυτόν τον αριθμό τηλεφώνου. Μπορείτε να μου πείτε το όνομά σας;',
        'customer_found': 'Βρήκα τον λογαριασμό σας, {name}. Έχετε κάνει {orders} παραγγελίες μαζί μας.',
        'need_order_details': 'Χρειάζομαι τον αριθμό παραγγελίας ή τον αριθμό τηλεφώνου σας για να ελέγξω την κατάσταση '
                              'της παραγγελίας. Τι στοιχεία μπορείτε να μου δώσετε;',
        'order_not_found': 'Δεν βρήκα καμία παραγγελία με αυτά τα στοιχεία. Παρακαλώ ελέγξτε τον αριθμό παραγγελίας '
                           'ή τον αριθμό τηλεφώνου σας.',
        'no_customer_orders': '{name}, δεν βρήκα καμία παραγγελία για εσάς στο σύστημά μας.',
        'order_found': 'Βρήκα την παραγγελία σας {reference}. Κατάσταση: {status}.',
        'order_found_named': '{name}, βρήκα την παραγγελία σας {reference}. Κατάσταση: {status}.',
        'order_tracking': ' Κωδικός παρακολούθησης: {tracking}. Εκτιμώμενη παράδοση: {delivery}.',
        'order_processing': ' Η παραγγελία σας προετοιμάζεται και θα σταλεί σύντομα.',
        'order_delivered': ' Η παραγγελία σας παραδόθηκε επιτυχώς!',
        'orders_found': 'Βρήκα {count} παραγγελίες: {items}. Για ποια θέλετε περισσότερες πληροφορίες;',
        'order_item': '{reference} - {status} (€{total})',
        'need_tracking': 'Χρειάζομαι τον κωδικό παρακολούθησης ή τον αριθμό παραγγελίας.',
        'tracking_not_found': 'Δεν βρήκα πληροφορίες παρακολούθησης για αυτόν τον αριθμό. '
                              'Ίσως η παραγγελία δεν έχει σταλεί ακόμα.',
        'tracking_found': 'Η παραγγελία με κωδικό παρακολούθησης {tracking} είναι {status}. Εκτιμώμενη παράδοση: {delivery}.',
    },
}

def message(language: str, key: str, **values: Any) -> str:
    templates = MESSAGES.get(language, MESSAGES['en'])
    return templates[key].format(**values)

def resolve_language(params: Dict[str, Any], context: Dict[str, Any], *texts: Optional[str]) -> str:
    """Explicit request first, then Greek in what the caller said, then the caller's profile"""
    requested = params.get('language')
    if requested in SUPPORTED_LANGUAGES:
        return requested
    for text in texts:
        if text and detect_language(str(text)) == 'el':
            return 'el'
    profile = context.get('customerProfile') or {}
    preferred = profile.get('preferredLanguage')
    return preferred if preferred in SUPPORTED_LANGUAGES else 'en'

def format_day(moment: datetime, language: str = 'en') -> str:
    language = language if language in SUPPORTED_LANGUAGES else 'en'
    return f"{DAYS[language][moment.weekday()]} {moment.day} {MONTHS[language][moment.month - 1]}"

def format_date_time(moment: datetime, language: str = 'en') -> str:
    language = language if language in SUPPORTED_LANGUAGES else 'en'
    at = 'στις' if language == 'el' else 'at'
    return f"{format_day(moment, language)} {moment.year} {at} {moment.strftime('%H:%M')}"

def format_order_status(status: Optional[str], language: str = 'en') -> str:
    return ORDER_STATUS.get(language, ORDER_STATUS['en']).get(status, status or '')
