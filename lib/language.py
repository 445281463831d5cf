import re
from typing import Any, Dict, Optional

# Greek and Coptic, Greek Extended
GREEK_PATTERN = re.compile('[\u0370-\u03FF\u1F00-\u1FFF]')

def detect_language(text: Optional[str]) -> str:
    if not text:
        return 'en'
    return 'el' if GREEK_PATTERN.search(text) else 'en'

def detect_language_from_result(result: Dict[str, Any]) -> str:
    if result.get('language'):
        return result['language']
    return detect_language(result.get('message'))
