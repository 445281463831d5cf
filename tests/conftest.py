import pytest
from unittest.mock import AsyncMock, MagicMock
import sys
from pathlib import Path

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
sys.path.append(project_root)

from lib.config import Settings
from lib.data_access import DataAccess
from lib.database import SupabaseStore
from lib.fallback_store import FallbackStore
from lib.monitoring import Monitor
from api.routes import create_app

QUERY_METHODS = ['select', 'insert', 'update', 'eq', 'gt', 'gte', 'lt', 'in_', 'or_',
                 'ilike', 'order', 'limit']

def make_query(data=None, error: Exception = None):
    """A PostgREST query builder stand-in: every filter returns itself"""
    query = MagicMock()
    for method in QUERY_METHODS:
        getattr(query, method).return_value = query
    if error is not None:
        query.execute.side_effect = error
    else:
        query.execute.return_value = MagicMock(data=data if data is not None else [])
    return query

def make_supabase(data=None, error: Exception = None):
    mock_client = MagicMock()
    query = make_query(data, error)
    mock_client.table.return_value = query
    mock_client.rpc.return_value = query
    return mock_client, query

@pytest.fixture
def settings():
    return Settings(
        supabase_url='',
        supabase_anon_key='',
        supabase_service_key='',
        openai_api_key='',
        vapi_api_key='',
        vapi_public_key='public-key',
        vapi_assistant_id='assistant-id',
        vapi_server_secret='',
        upstash_redis_rest_url='',
        upstash_redis_rest_token='',
        deepgram_api_key='',
        environment='test'
    )

@pytest.fixture
def monitor():
    return Monitor()

@pytest.fixture
def fallback_store(monitor):
    return FallbackStore(monitor=monitor)

@pytest.fixture
def fallback_access(fallback_store, monitor):
    return DataAccess(live=None, fallback=fallback_store, monitor=monitor)

@pytest.fixture
def live_store():
    store = AsyncMock(spec=SupabaseStore)
    return store

@pytest.fixture
def live_access(live_store, fallback_store, monitor):
    return DataAccess(live=live_store, fallback=fallback_store, monitor=monitor)

@pytest.fixture
def test_client(fallback_access, settings):
    app = create_app(data_access=fallback_access, settings=settings)
    app.config['TESTING'] = True
    return app.test_client()
