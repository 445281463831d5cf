import logging
from collections import Counter
from typing import Dict, Any, List, Optional

logger = logging.getLogger(__name__)

class Monitor:
    """Collects the degraded-mode signals of the data access layer.

    Every call is logged; counters are kept so the health endpoint and the
    tests can observe how often data was dropped or the live store failed.
    """

    def __init__(self):
        self.degraded_writes: Counter = Counter()
        self.remote_failures: Counter = Counter()
        self.missing_config: List[str] = []

    def log_degraded_write(self, operation: str, data: Dict[str, Any]) -> None:
        """A write was acknowledged but not persisted"""
        self.degraded_writes[operation] += 1
        logger.warning(f"Database not available, {operation} not saved: {data}")

    def log_remote_failure(self, operation: str, error: Exception) -> None:
        self.remote_failures[operation] += 1
        logger.error(f"Live database call {operation} failed, using fallback: {type(error).__name__}: {error}")

    def log_configuration_absent(self, missing: List[str]) -> None:
        self.missing_config = list(missing)
        logger.warning(f"Supabase not configured, using fallback data. Missing environment variables: {', '.join(missing)}")

    def snapshot(self, operation: Optional[str] = None) -> Dict[str, Any]:
        if operation:
            return {
                'degraded_writes': self.degraded_writes[operation],
                'remote_failures': self.remote_failures[operation]
            }
        return {
            'degraded_writes': sum(self.degraded_writes.values()),
            'remote_failures': sum(self.remote_failures.values()),
            'missing_config': self.missing_config
        }
