from typing import Optional, Tuple, Dict
import logging

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Internal server error"

class AppError(Exception):
    def __init__(self, message: str, status_code: int = 500, user_message: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        if user_message:
            self.user_message = user_message
        elif status_code < 500:
            self.user_message = message
        else:
            self.user_message = GENERIC_ERROR
        super().__init__(self.message)

class ErrorHandler:
    @staticmethod
    def handle_request_error(error: Exception, context: str) -> Tuple[Dict[str, str], int]:
        """Map an exception raised while serving a request to a JSON body and status"""
        if isinstance(error, AppError):
            if error.status_code >= 500:
                logger.error(f"[{context}] {error.message}", exc_info=True)
            else:
                logger.warning(f"[{context}] {error.message}")
            return {"error": error.user_message}, error.status_code

        logger.error(f"[{context}] Unexpected error: {str(error)}", exc_info=True)
        return {"error": GENERIC_ERROR}, 500

    @staticmethod
    def handle_pipeline_error(error: Exception, step: str) -> None:
        logger.error(f"Pipeline step '{step}' failed: {str(error)}", exc_info=True)
