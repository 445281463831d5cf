from typing import Optional
import logging

logger = logging.getLogger(__name__)

STORE_PHONE = "77-111-104"

class AppError(Exception):
    def __init__(self, message: str, status_code: int = 500, user_message: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.user_message = user_message or "An error occurred. Please try again later."
        super().__init__(self.message)

class DatabaseError(AppError):
    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message, status_code=503)

class ErrorHandler:
    @staticmethod
    def handle_function_error(name: str, error: Exception) -> str:
        logger.error(f"Function {name} execution error: {str(error)}")
        return f"I'm having trouble with that request. Please try again or call us directly at {STORE_PHONE}."

    @staticmethod
    def handle_webhook_error(error: Exception) -> str:
        logger.error(f"Webhook handler error: {str(error)}")
        return "Something went wrong processing your request"

    @staticmethod
    def handle_summary_error(error: Exception) -> None:
        logger.warning(f"Call summary generation failed: {str(error)}")
