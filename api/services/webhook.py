import hashlib
import hmac
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Tuple

from lib.config import Settings
from lib.data_access import DataAccess
from lib.error_handler import AppError, ErrorHandler
from lib.language import detect_language, detect_language_from_result
from lib.openai_client import OpenAIClient
from .customers import CustomerService
from .functions import FunctionService

logger = logging.getLogger(__name__)

WebhookResult = Tuple[Dict[str, Any], int]

RECEIVED = {'received': True}

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

class VapiWebhookService:
    """Routes Vapi server messages to the data layer and the tool functions"""

    def __init__(
        self,
        settings: Settings,
        data_access: DataAccess,
        function_service: FunctionService,
        customer_service: CustomerService,
        summarizer: Optional[OpenAIClient] = None
    ):
        self.settings = settings
        self.db = data_access
        self.functions = function_service
        self.customers = customer_service
        self.summarizer = summarizer
        self.error_handler = ErrorHandler()
        self.handlers = {
            'function-call': self.handle_function_call,
            'call-started': self.handle_call_started,
            'call-ended': self.handle_call_ended,
            'conversation-update': self.handle_conversation_update,
            'status-update': self.handle_status_update,
            'transcript': self.handle_transcript,
            'transfer-destination-request': self.handle_transfer_request,
        }

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        secret = self.settings.vapi_server_secret
        if not secret:
            logger.warning("VAPI_SERVER_SECRET not configured - skipping signature verification")
            return True
        if not signature:
            logger.error("Missing x-vapi-signature header")
            return False

        expected = hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(signature.strip().lower(), expected)

    async def handle(self, payload: Dict[str, Any]) -> WebhookResult:
        message_type = payload.get('type')
        call = payload.get('call') or {}
        logger.info(f"Webhook received: {message_type} call={call.get('id')}")

        handler = self.handlers.get(message_type)
        if handler is None:
            logger.info(f"Unhandled webhook type: {message_type}")
            return dict(RECEIVED), 200

        started = datetime.now(timezone.utc)
        try:
            return await handler(call, payload)
        except Exception as e:
            message = self.error_handler.handle_webhook_error(e)
            await self.db.track_event('webhook_error', {
                'type': message_type,
                'error': str(e),
                'processingTime': (datetime.now(timezone.utc) - started).total_seconds()
            })
            return {'error': 'Internal server error', 'message': message}, 500

    async def handle_function_call(self, call: Dict[str, Any], payload: Dict[str, Any]) -> WebhookResult:
        function_call = payload.get('functionCall') or {}
        name = function_call.get('name')
        parameters = function_call.get('parameters') or {}
        customer_number = (call.get('customer') or {}).get('number')
        started = datetime.now(timezone.utc)

        conversation_id = None
        try:
            conversation = await self.db.create_conversation(call.get('id'), customer_number, {
                'functionCall': {'name': name, 'parameters': parameters},
                'callStarted': _now_iso()
            })
            conversation_id = conversation.get('id')
        except Exception as e:
            logger.warning(f"Failed to create conversation record: {str(e)}")

        profile = await self.customers.identify_customer(customer_number, conversation_id)
        context = {
            'callId': call.get('id'),
            'conversationId': conversation_id,
            'customerNumber': customer_number,
            'customerProfile': profile,
            'customerContext': self.customers.get_customer_context(profile),
            'timestamp': _now_iso()
        }

        try:
            result = await self.functions.execute(name, parameters, context)
        except Exception as e:
            message = self.error_handler.handle_function_error(name, e)
            await self.db.track_event('function_execution_error', {
                'functionName': name,
                'parameters': parameters,
                'error': str(e),
                'processingTime': (datetime.now(timezone.utc) - started).total_seconds()
            }, conversation_id)
            if name in self.functions.functions:
                message = self.functions.fallback_response(name)
            return {'result': {'error': True, 'message': message, 'fallback': True}}, 200

        result.setdefault('language', detect_language_from_result(result))
        await self.db.track_event('function_execution', {
            'functionName': name,
            'parameters': parameters,
            'success': True,
            'processingTime': (datetime.now(timezone.utc) - started).total_seconds(),
            'resultType': 'error' if result.get('error') else 'success'
        }, conversation_id)

        if conversation_id:
            try:
                await self.db.update_conversation(call.get('id'), {
                    'functions_called': [name],
                    'metadata': {
                        'lastFunction': name,
                        'lastFunctionResult': result,
                        'lastFunctionTime': _now_iso()
                    }
                })
            except Exception as e:
                logger.warning(f"Failed to update conversation: {str(e)}")

        return {'result': result}, 200

    async def handle_call_started(self, call: Dict[str, Any], payload: Dict[str, Any]) -> WebhookResult:
        customer = call.get('customer') or {}
        customer_number = customer.get('number')
        logger.info(f"Call started: {call.get('id')} from {customer_number}")

        profile = await self.customers.identify_customer(customer_number)
        greeting = None
        if profile:
            greeting = self.customers.generate_greeting(profile, profile['preferredLanguage'])

        await self.db.create_conversation(call.get('id'), customer_number, {
            'callStarted': _now_iso(),
            'customerName': (profile or {}).get('name') or customer.get('name'),
            'assistantId': call.get('assistantId'),
            'personalizedGreeting': greeting
        })
        await self.db.track_event('call_started', {
            'callId': call.get('id'),
            'customerNumber': customer_number,
            'assistantId': call.get('assistantId'),
            'customerIdentified': bool(profile),
            'isReturningCustomer': bool(profile and profile['totalOrders'] > 0),
            'isVipCustomer': bool(profile and profile['isVipCustomer'])
        })

        response = dict(RECEIVED)
        if greeting:
            response['personalizedGreeting'] = greeting
            response['customerContext'] = {
                'identified': True,
                'name': profile['name'],
                'preferredLanguage': profile['preferredLanguage']
            }
        return response, 200

    async def handle_call_ended(self, call: Dict[str, Any], payload: Dict[str, Any]) -> WebhookResult:
        call_id = call.get('id')
        duration = call.get('duration') or 0
        logger.info(f"Call ended: {call_id}, duration: {duration}s")

        costs = call.get('costs') or {}
        cost = call.get('cost')
        if cost is None and isinstance(costs, dict):
            cost = sum(v for v in costs.values() if isinstance(v, (int, float)))

        await self.db.update_conversation(call_id, {
            'ended_at': _now_iso(),
            'duration_seconds': duration,
            'resolution_status': 'resolved' if call.get('endedReason') == 'customer-ended-call' else 'incomplete'
        })
        if cost is not None:
            await self.db.update_call_cost(call_id, cost, costs if isinstance(costs, dict) else {})

        await self.db.track_event('call_ended', {
            'callId': call_id,
            'duration': duration,
            'endReason': call.get('endedReason'),
            'cost': cost
        })

        transcript = call.get('transcript') or payload.get('transcript')
        if transcript and self.summarizer is not None:
            try:
                summary = await self.summarizer.summarize_call(transcript)
                await self.db.update_conversation(call_id, {'summary': summary})
            except AppError as e:
                self.error_handler.handle_summary_error(e)

        return dict(RECEIVED), 200

    async def handle_conversation_update(self, call: Dict[str, Any], payload: Dict[str, Any]) -> WebhookResult:
        transcript = payload.get('transcript') or payload.get('message')
        if transcript:
            text = transcript.get('text') if isinstance(transcript, dict) else str(transcript)
            await self.db.update_conversation(call.get('id'), {
                'transcript': transcript,
                'language_detected': detect_language(text)
            })
        return dict(RECEIVED), 200

    async def handle_status_update(self, call: Dict[str, Any], payload: Dict[str, Any]) -> WebhookResult:
        await self.db.track_event('call_status_update', {
            'callId': call.get('id'),
            'status': call.get('status'),
            'timestamp': _now_iso()
        })
        return dict(RECEIVED), 200

    async def handle_transcript(self, call: Dict[str, Any], payload: Dict[str, Any]) -> WebhookResult:
        message = payload.get('message') or payload.get('transcript') or {}
        if isinstance(message, dict):
            role = message.get('role', 'unknown')
            text = message.get('transcript') or message.get('content')
        else:
            role, text = 'unknown', message

        await self.db.track_event('transcript_update', {
            'callId': call.get('id'),
            'role': role,
            'transcript': text,
            'timestamp': _now_iso()
        })
        return dict(RECEIVED), 200

    async def handle_transfer_request(self, call: Dict[str, Any], payload: Dict[str, Any]) -> WebhookResult:
        parameters = (payload.get('functionCall') or {}).get('parameters') or {}
        urgency = parameters.get('urgency', 'medium')

        if urgency in ('critical', 'emergency'):
            destination = {
                'type': 'number',
                'number': self.settings.emergency_transfer_number,
                'message': 'Connecting you to our emergency support team.'
            }
        else:
            destination = {
                'type': 'number',
                'number': self.settings.general_transfer_number,
                'message': 'Transferring you to our support team. Please hold.'
            }

        await self.db.track_event('call_transfer', {
            'callId': call.get('id'),
            'urgency': urgency,
            'destination': destination['number']
        })
        return {'destination': destination}, 200
