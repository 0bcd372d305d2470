import json
import logging
from typing import Dict, Any, List, Optional

from api.services.personalizer import SessionPersonalizer
from api.services.transcript import TranscriptProcessor
from lib.database import Database
from lib.error_handler import AppError, ErrorHandler
from lib.signature import is_signature_valid

logger = logging.getLogger(__name__)

EVENT_TYPE = 'post_call_transcription'
WELCOME_SESSION_TYPE = 'welcome'
WELCOME_MODULE = 'Welcome'
DEFAULT_SESSION_TYPE = 'regular'

SPEAKERS = {
    'agent': 'therapist',
    'user': 'you'
}


def transform_transcript(entries: List[Dict[str, Any]]) -> str:
    """Flatten vendor transcript entries into "speaker: message" lines"""
    lines = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        message = entry.get('message')
        role = entry.get('role')
        if not message or not role:
            continue
        lines.append(f"{SPEAKERS.get(role, role)}: {message}")
    return '\n'.join(lines)


def client_variables(data: Dict[str, Any]) -> Dict[str, Any]:
    """Custom variables the client attached when the conversation started"""
    initiation = data.get('conversation_initiation_client_data')
    if not isinstance(initiation, dict):
        return {}
    variables = initiation.get('dynamic_variables')
    return variables if isinstance(variables, dict) else {}


class PostCallWebhookService:
    def __init__(
        self,
        database: Database,
        transcript_processor: TranscriptProcessor,
        personalizer: SessionPersonalizer,
        webhook_secret: Optional[str],
        default_module: str,
        min_duration_secs: int = 120
    ):
        self.db = database
        self.processor = transcript_processor
        self.personalizer = personalizer
        self.webhook_secret = webhook_secret
        self.default_module = default_module
        self.min_duration_secs = min_duration_secs
        self.error_handler = ErrorHandler()

    def verify(self, raw_body: str, signature_header: Optional[str]) -> None:
        if not is_signature_valid(raw_body, signature_header, self.webhook_secret):
            raise AppError("Invalid webhook signature", status_code=401, user_message="Unauthorized")

    async def handle(self, raw_body: str, signature_header: Optional[str]) -> Dict[str, Any]:
        """Verify, store and process a post-call transcription event"""
        self.verify(raw_body, signature_header)

        try:
            payload = json.loads(raw_body)
        except ValueError:
            raise AppError("Malformed webhook body", status_code=400, user_message="Invalid event")

        if not isinstance(payload, dict):
            raise AppError("Webhook body is not an object", status_code=400, user_message="Invalid event")
        data = payload.get('data')
        if payload.get('type') != EVENT_TYPE or not data or not isinstance(data, dict):
            raise AppError(f"Unsupported event type: {payload.get('type')}", status_code=400, user_message="Invalid event")

        conversation_id = data.get('conversation_id')
        transcript_entries = data.get('transcript')
        variables = client_variables(data)
        user_email = variables.get('user_email')
        if not conversation_id or not isinstance(transcript_entries, list) or not transcript_entries or not user_email:
            raise AppError("Missing conversation_id, transcript or user_email", status_code=400, user_message="Missing data")

        user = self.db.get_user_by_email(user_email)
        if not user:
            raise AppError("User not found", status_code=404)
        user_id = user['id']

        session_type = variables.get('session_type') or DEFAULT_SESSION_TYPE
        module_name = variables.get('module_name') or self.default_module
        metadata = data.get('metadata')
        metadata = metadata if isinstance(metadata, dict) else {}
        duration = metadata.get('call_duration_secs')

        is_welcome = session_type == WELCOME_SESSION_TYPE or module_name == WELCOME_MODULE
        if not is_welcome and (duration or 0) < self.min_duration_secs:
            logger.info(
                f"Skipping conversation {conversation_id}: {duration or 0}s is below "
                f"the {self.min_duration_secs}s minimum for {session_type} sessions"
            )
            return {
                'success': True,
                'skipped': True,
                'message': f"Session not saved: duration {duration or 0}s is less than minimum {self.min_duration_secs}s",
                'duration': duration or 0,
                'minimum': self.min_duration_secs,
                'sessionType': session_type,
                'moduleName': module_name
            }

        transcript = transform_transcript(transcript_entries)
        self.db.insert_session({
            'user_id': user_id,
            'conversation_id': conversation_id,
            'transcript': transcript,
            'duration': duration,
            'summary': 'Summarizing...',
            'title': 'Recent Session'
        })

        processed = await self._run_pipeline(user_id, conversation_id, transcript, duration)
        return {'success': True, 'processed': processed}

    async def _run_pipeline(self, user_id: str, conversation_id: str, transcript: str, duration: Optional[int]) -> bool:
        """Process the transcript, then prepare the next session; the stored session is kept on failure"""
        try:
            await self.processor.process(user_id, conversation_id, transcript, duration)
        except Exception as e:
            self.error_handler.handle_pipeline_error(e, 'process-transcript')
            return False

        try:
            await self.personalizer.personalize(user_id)
        except Exception as e:
            self.error_handler.handle_pipeline_error(e, 'synthesize-therapy-session')
            return False
        return True
