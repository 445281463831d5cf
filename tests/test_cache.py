import json
from unittest.mock import MagicMock

from lib.cache import FunctionCache, create_cache, function_key

class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

def test_function_key_ignores_parameter_order():
    assert function_key('checkInventory', {'a': 1, 'b': 2}) == function_key('checkInventory', {'b': 2, 'a': 1})
    assert function_key('checkInventory', {'a': 1}) != function_key('getProductPrice', {'a': 1})
    assert function_key('trackOrder', None).startswith('func:trackOrder:')

def test_memory_hit_and_miss():
    cache = FunctionCache()
    assert cache.get('k') is None
    cache.set('k', {'found': True}, 60)
    assert cache.get('k') == ({'found': True}, 'memory')
    snapshot = cache.snapshot()
    assert snapshot['backend'] == 'memory'
    assert snapshot['memory_hits'] == 1
    assert snapshot['misses'] == 1

def test_cached_values_are_copies():
    cache = FunctionCache()
    cache.set('k', {'items': [1]}, 60)
    value, _ = cache.get('k')
    value['items'].append(2)
    assert cache.get('k')[0] == {'items': [1]}

def test_entries_expire():
    clock = FakeClock()
    cache = FunctionCache(clock=clock)
    cache.set('k', 'v', 30)
    clock.now += 29
    assert cache.get('k') == ('v', 'memory')
    clock.now += 2
    assert cache.get('k') is None
    assert cache.snapshot()['entries'] == 0

def test_zero_ttl_is_not_stored():
    cache = FunctionCache()
    cache.set('k', 'v', 0)
    assert cache.get('k') is None

def test_least_recently_used_entry_is_evicted():
    cache = FunctionCache(max_entries=2)
    cache.set('a', 1, 60)
    cache.set('b', 2, 60)
    cache.get('a')
    cache.set('c', 3, 60)
    assert cache.get('b') is None
    assert cache.get('a') == (1, 'memory')
    assert cache.get('c') == (3, 'memory')

def test_redis_hit_refills_memory():
    remote = MagicMock()
    remote.get.return_value = json.dumps({'found': True})
    cache = FunctionCache(remote=remote)

    assert cache.get('k') == ({'found': True}, 'redis')
    assert cache.get('k') == ({'found': True}, 'memory')
    remote.get.assert_called_once_with('k')

def test_set_writes_through_to_redis():
    remote = MagicMock()
    cache = FunctionCache(remote=remote)
    cache.set('k', {'found': True}, 120)
    remote.set.assert_called_once_with('k', json.dumps({'found': True}), ex=120)

def test_redis_errors_count_as_misses():
    remote = MagicMock()
    remote.get.side_effect = ConnectionError('down')
    remote.set.side_effect = ConnectionError('down')
    cache = FunctionCache(remote=remote)

    assert cache.get('k') is None
    cache.set('k', 'v', 60)
    assert cache.get('k') == ('v', 'memory')
    assert cache.backend == 'redis'

def test_delete_removes_both_tiers():
    remote = MagicMock()
    remote.get.return_value = None
    cache = FunctionCache(remote=remote)
    cache.set('k', 'v', 60)
    cache.delete('k')
    remote.delete.assert_called_once_with('k')
    assert cache.get('k') is None

def test_create_cache_without_config_is_memory_only(settings):
    assert create_cache(settings).backend == 'memory'

def test_create_cache_with_config(settings, monkeypatch):
    redis_class = MagicMock()
    monkeypatch.setattr('lib.cache.Redis', redis_class)
    settings.upstash_redis_rest_url = 'https://example.upstash.io'
    settings.upstash_redis_rest_token = 'token'

    cache = create_cache(settings)

    redis_class.assert_called_once_with(url='https://example.upstash.io', token='token')
    assert cache.backend == 'redis'
