from flask import Flask, request, jsonify
import asyncio
import logging
import platform
import sys
from datetime import datetime, timezone
from typing import Optional

from lib.cache import FunctionCache, create_cache
from lib.config import Settings, get_settings
from lib.data_access import DataAccess, create_data_access
from lib.openai_client import OpenAIClient
from .services.customers import CustomerService
from .services.functions import FunctionService
from .services.webhook import VapiWebhookService

logger = logging.getLogger(__name__)

def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )

def _build_summarizer(settings: Settings) -> Optional[OpenAIClient]:
    if not settings.openai_api_key:
        logger.info("OPENAI_API_KEY not set - call summaries disabled")
        return None
    try:
        return OpenAIClient(settings)
    except Exception as e:
        logger.error(f"Error initializing OpenAI client: {str(e)}")
        return None

def create_app(
    data_access: Optional[DataAccess] = None,
    settings: Optional[Settings] = None,
    summarizer: Optional[OpenAIClient] = None,
    cache: Optional[FunctionCache] = None
) -> Flask:
    settings = settings or get_settings()
    configure_logging(settings)

    logger.info("Initializing data access...")
    data_access = data_access or create_data_access(settings)
    logger.info(f"Data access initialized in {data_access.mode.value} mode")

    customer_service = CustomerService(data_access)
    cache = cache or create_cache(settings)
    function_service = FunctionService(data_access, customer_service=customer_service,
                                       settings=settings, cache=cache)
    webhook_service = VapiWebhookService(
        settings=settings,
        data_access=data_access,
        function_service=function_service,
        customer_service=customer_service,
        summarizer=summarizer if summarizer is not None else _build_summarizer(settings)
    )

    app = Flask(__name__)
    app.extensions['data_access'] = data_access
    app.extensions['webhook_service'] = webhook_service

    @app.after_request
    def add_cors_headers(response):
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization, X-Vapi-Signature'
        return response

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.route('/api/vapi', methods=['POST', 'OPTIONS'])
    def vapi_webhook():
        """Handle server messages from Vapi"""
        if request.method == 'OPTIONS':
            return '', 200

        try:
            raw_body = request.get_data()
            if not webhook_service.verify_signature(raw_body, request.headers.get('X-Vapi-Signature')):
                logger.error("Invalid webhook signature")
                return jsonify({'error': 'Unauthorized'}), 401

            payload = request.get_json(silent=True)
            if not isinstance(payload, dict):
                return jsonify({'error': 'Invalid JSON body'}), 400

            body, status = asyncio.run(webhook_service.handle(payload))
            return jsonify(body), status

        except Exception as e:
            logger.error(f"Vapi webhook handler error: {str(e)}", exc_info=True)
            return jsonify({
                'error': 'Internal server error',
                'message': str(e) if settings.environment == 'development' else 'Something went wrong'
            }), 500

    @app.route('/api/vapi', methods=['GET'])
    def vapi_stats():
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'functions': function_service.get_stats(),
            'dataMode': data_access.mode.value,
            'environment': settings.environment
        })

    @app.route('/api/vapi/health', methods=['GET', 'OPTIONS'])
    def health():
        """Health check for monitoring, reports degraded when serving fallback data"""
        if request.method == 'OPTIONS':
            return '', 200

        status = {
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'services': {
                'api': 'online',
                'database': 'checking',
                'cache': 'configured' if cache.backend == 'redis' else 'not configured',
                'vapi': 'configured' if settings.vapi_api_key else 'not configured'
            },
            'environment': {
                'python_version': platform.python_version(),
                'region': settings.vercel_region or 'unknown',
                'environment': settings.environment
            },
            'cache': cache.snapshot(),
            'functions': {name: 'active' for name in function_service.functions}
        }

        try:
            report = asyncio.run(data_access.health())
            status['services']['database'] = report['database']
            status['data_mode'] = report['mode']
            status['degraded_mode'] = report['monitor']
            if 'database_error' in report:
                status['database_error'] = report['database_error']
            if 'database_records' in report:
                status['database_records'] = report['database_records']
        except Exception as e:
            logger.error(f"Health check failed: {str(e)}", exc_info=True)
            status['services']['database'] = 'error'
            status['database_error'] = str(e)

        if any(value in ('error', 'not configured') for value in status['services'].values()):
            status['status'] = 'degraded'
        if data_access.mode.value == 'fallback':
            status['status'] = 'degraded'

        return jsonify(status), 200

    @app.route('/api/config', methods=['GET', 'OPTIONS'])
    def public_config():
        """Front end configuration, never includes secrets"""
        if request.method == 'OPTIONS':
            return '', 200

        return jsonify({
            'environment': settings.environment,
            'debug': False,
            'voice': {'provider': '11labs', 'language': 'en-US'},
            'model': {'provider': 'openai', 'model': settings.openai_summary_model},
            'functions': sorted(function_service.functions),
            'vapi': {
                'publicKey': settings.vapi_public_key,
                'assistantId': settings.vapi_assistant_id,
                'available': bool(settings.vapi_api_key)
            },
            'systemStatus': {
                'hasVapiConfig': bool(settings.vapi_api_key),
                'hasSupabaseConfig': settings.has_supabase_config,
                'hasOpenAIConfig': bool(settings.openai_api_key),
                'hasDeepgramConfig': bool(settings.deepgram_api_key)
            },
            'storeInfo': {
                'name': settings.store_name,
                'address': settings.store_address,
                'phone': settings.store_phone,
                'hours': settings.store_hours
            }
        }), 200

    logger.info("All services initialized successfully")
    return app
