import logging
from typing import Dict, Any

from lib.config import Settings
from .messages import resolve_language

logger = logging.getLogger(__name__)

HOURS = {
    'en': {
        'weekdays': 'Monday to Friday 9am-7pm',
        'saturday': 'Saturday 9am-2pm',
        'sunday': 'Sunday closed',
        'full': "We are open Monday to Friday 9am-7pm, Saturday 9am-2pm. We're closed on Sundays."
    },
    'el': {
        'weekdays': 'Δευτέρα έως Παρασκευή 9π.μ.-7μ.μ.',
        'saturday': 'Σάββατο 9π.μ.-2μ.μ.',
        'sunday': 'Κυριακή κλειστά',
        'full': 'Είμαστε ανοιχτά Δευτέρα έως Παρασκευή 9π.μ.-7μ.μ., Σάββατο 9π.μ.-2μ.μ. Την Κυριακή είμαστε κλειστά.'
    }
}

SERVICES = {
    'en': {
        'repairs': 'Computer and laptop repairs',
        'assembly': 'Custom PC building and assembly',
        'consultation': 'Technical consultation and advice',
        'support': 'After-sales support and warranty service',
        'full': 'We offer computer repairs, custom PC building, technical consultation, and comprehensive after-sales support.'
    },
    'el': {
        'repairs': 'Επισκευές υπολογιστών και laptops',
        'assembly': 'Κατασκευή και συναρμολόγηση custom PC',
        'consultation': 'Τεχνική συμβουλευτική και υποστήριξη',
        'support': 'Υποστήριξη μετά την πώληση και εγγύηση',
        'full': 'Προσφέρουμε επισκευές υπολογιστών, κατασκευή custom PC, τεχνική συμβουλευτική και πλήρη υποστήριξη μετά την πώληση.'
    }
}

# Keywords a caller (or the model) may use for each kind of store information
INFO_TYPES = [
    ('hours', ('hours', 'open', 'ώρες', 'ωράριο')),
    ('location', ('location', 'address', 'τοποθεσία', 'διεύθυνση')),
    ('contact', ('contact', 'phone', 'email', 'τηλέφωνο', 'επικοινωνία')),
    ('services', ('services', 'υπηρεσίες')),
]

TRANSPORT_KEYWORDS = {
    'car': ('car', 'drive', 'driving', 'αυτοκίνητο'),
    'bus': ('bus', 'public transport', 'λεωφορείο'),
}

def classify_info_type(info_type: str) -> str:
    lowered = (info_type or '').lower()
    if not lowered or lowered == 'general':
        return 'general'
    for kind, keywords in INFO_TYPES:
        if any(keyword in lowered for keyword in keywords):
            return kind
    return 'general'

class StoreInfoService:
    """Opening hours, location, contact details and directions"""

    def __init__(self, settings: Settings):
        self.settings = settings

    def location(self, language: str) -> Dict[str, str]:
        if language == 'el':
            address = self.settings.store_address_el
            return {
                'address': address,
                'directions': f'Βρισκόμαστε στη {address}. Είμαστε κοντά στο κέντρο της πόλης, '
                              'εύκολα προσβάσιμοι με αυτοκίνητο ή δημόσια συγκοινωνία.',
                'parking': 'Διαθέσιμη δωρεάν στάθμευση μπροστά από το κατάστημα.'
            }
        address = self.settings.store_address
        return {
            'address': address,
            'directions': f"We are located at {address}. We're near the city center, "
                          "easily accessible by car or public transport.",
            'parking': 'Free parking is available in front of the store.'
        }

    def contact(self, language: str) -> Dict[str, str]:
        phone, email = self.settings.store_phone, self.settings.store_email
        if language == 'el':
            full = f'Μπορείτε να μας καλέσετε στο {phone} ή να μας στείλετε email στο {email}.'
        else:
            full = f'You can reach us by phone at {phone} or email us at {email}.'
        return {'phone': phone, 'email': email, 'full': full}

    async def get_store_info(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        info_type = params.get('info_type') or 'general'
        language = resolve_language(params, context, info_type)
        kind = classify_info_type(info_type)

        if kind == 'hours':
            return {'type': kind, 'language': language, 'message': HOURS[language]['full'], 'info': HOURS[language]}
        if kind == 'location':
            location = self.location(language)
            return {'type': kind, 'language': language, 'message': location['directions'], 'info': location}
        if kind == 'contact':
            contact = self.contact(language)
            return {'type': kind, 'language': language, 'message': contact['full'], 'info': contact}
        if kind == 'services':
            return {'type': kind, 'language': language, 'message': SERVICES[language]['full'], 'info': SERVICES[language]}

        location = self.location(language)
        contact = self.contact(language)
        if language == 'el':
            message = (f"Καλώς ήρθατε στο Armenius Store! {HOURS['el']['full']} "
                       f"Βρισκόμαστε στη {location['address']}. {contact['full']}")
        else:
            message = (f"Welcome to Armenius Store! {HOURS['en']['full']} "
                       f"We're located at {location['address']}. {contact['full']}")
        return {
            'type': 'general',
            'language': language,
            'message': message,
            'info': {'hours': HOURS[language], 'location': location, 'contact': contact}
        }

    async def get_directions(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        from_location = params.get('from_location') or ''
        transport = (params.get('transport_method') or '').lower()
        language = resolve_language(params, context, from_location, transport)

        method = None
        for name, keywords in TRANSPORT_KEYWORDS.items():
            if any(keyword in transport for keyword in keywords):
                method = name
                break

        location = self.location(language)
        if language == 'el':
            message = f"Βρισκόμαστε στη {location['address']}. "
            if method == 'car':
                message += 'Με αυτοκίνητο: Ακολουθήστε τη Λεωφόρο Μακαρίου προς το κέντρο. Διαθέσιμη δωρεάν στάθμευση.'
            elif method == 'bus':
                message += 'Με λεωφορείο: Πολλές γραμμές περνούν από τη Λεωφόρο Μακαρίου. Στάση κοντά στο κατάστημα.'
            else:
                message += 'Εύκολα προσβάσιμο με αυτοκίνητο ή δημόσια συγκοινωνία. Δωρεάν στάθμευση διαθέσιμη.'
        else:
            message = f"We are located at {location['address']}. "
            if method == 'car':
                message += 'By car: Follow Makarios Avenue towards the city center. Free parking available.'
            elif method == 'bus':
                message += 'By bus: Multiple bus lines pass through Makarios Avenue. Bus stop near the store.'
            else:
                message += 'Easily accessible by car or public transport. Free parking available in front of the store.'

        return {
            'type': 'directions',
            'language': language,
            'transportMethod': method,
            'message': message,
            'location': location,
            'googleMapsLink': self.settings.store_maps_url
        }
