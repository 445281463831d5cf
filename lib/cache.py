import base64
import json
import logging
import threading
import time
from collections import Counter, OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple

from upstash_redis import Redis

from lib.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300
MAX_MEMORY_ENTRIES = 500
# Redis hits are copied into memory for this long
REMOTE_REFILL_TTL = 60

def function_key(name: str, parameters: Optional[Dict[str, Any]]) -> str:
    payload = json.dumps(parameters or {}, sort_keys=True, default=str)
    return f"func:{name}:{base64.b64encode(payload.encode('utf-8')).decode('ascii')}"

class FunctionCache:
    """Tool result cache: process memory first, then Upstash Redis when configured.

    Values are stored as JSON, so callers always get a fresh copy they can
    mutate. Redis errors are logged and treated as misses.
    """

    def __init__(self, remote: Optional[Redis] = None, max_entries: int = MAX_MEMORY_ENTRIES,
                 clock: Callable[[], float] = time.monotonic):
        self.remote = remote
        self.max_entries = max_entries
        self.clock = clock
        self.stats: Counter = Counter()
        self._memory: 'OrderedDict[str, Tuple[float, str]]' = OrderedDict()
        self._lock = threading.Lock()

    @property
    def backend(self) -> str:
        return 'redis' if self.remote is not None else 'memory'

    def get(self, key: str) -> Optional[Tuple[Any, str]]:
        """Return (value, tier) on a hit, None on a miss"""
        raw = self._recall(key)
        if raw is not None:
            self.stats['memory_hits'] += 1
            return json.loads(raw), 'memory'

        if self.remote is not None:
            try:
                raw = self.remote.get(key)
            except Exception as e:
                logger.error(f"Redis get error: {str(e)}")
                raw = None
            if raw:
                self._remember(key, raw, REMOTE_REFILL_TTL)
                self.stats['redis_hits'] += 1
                return json.loads(raw), 'redis'

        self.stats['misses'] += 1
        return None

    def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> None:
        if ttl <= 0:
            return
        raw = json.dumps(value, default=str)
        self._remember(key, raw, ttl)
        if self.remote is not None:
            try:
                self.remote.set(key, raw, ex=ttl)
            except Exception as e:
                logger.error(f"Redis set error: {str(e)}")

    def delete(self, key: str) -> None:
        with self._lock:
            self._memory.pop(key, None)
        if self.remote is not None:
            try:
                self.remote.delete(key)
            except Exception as e:
                logger.error(f"Redis delete error: {str(e)}")

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            entries = len(self._memory)
        return {
            'backend': self.backend,
            'entries': entries,
            'memory_hits': self.stats['memory_hits'],
            'redis_hits': self.stats['redis_hits'],
            'misses': self.stats['misses']
        }

    def _recall(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                return None
            expires_at, raw = entry
            if expires_at <= self.clock():
                del self._memory[key]
                return None
            self._memory.move_to_end(key)
            return raw

    def _remember(self, key: str, raw: str, ttl: int) -> None:
        with self._lock:
            self._memory[key] = (self.clock() + ttl, raw)
            self._memory.move_to_end(key)
            while len(self._memory) > self.max_entries:
                self._memory.popitem(last=False)

def create_cache(settings: Settings) -> FunctionCache:
    if not (settings.upstash_redis_rest_url and settings.upstash_redis_rest_token):
        logger.warning("Redis not configured, using memory cache only")
        return FunctionCache()

    try:
        remote = Redis(url=settings.upstash_redis_rest_url, token=settings.upstash_redis_rest_token)
    except Exception as e:
        logger.error(f"Failed to initialize Redis, using memory cache only: {str(e)}")
        return FunctionCache()

    logger.info("Redis cache initialized")
    return FunctionCache(remote=remote)
