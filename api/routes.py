from flask import Flask, request, jsonify
import logging
import sys
from supabase import create_client, Client

from api.services.feedback import FeedbackService
from api.services.goals import GoalService
from api.services.insights import InsightService
from api.services.moods import MoodService
from api.services.personalizer import SessionPersonalizer
from api.services.profile import ProfileSynthesizer
from api.services.transcript import TranscriptProcessor
from api.services.voice import VoiceAgentService
from api.services.webhook import PostCallWebhookService
from lib.auth import get_authenticated_user_id
from lib.config import get_settings
from lib.database import Database
from lib.error_handler import AppError, ErrorHandler
from lib.openai_client import OpenAIClient

# Configure detailed logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout,
    force=True  # Ensure our config takes precedence
)

logger = logging.getLogger(__name__)

settings = get_settings()

# Initialize Flask
app = Flask(__name__)

# Initialize clients
logger.info("Initializing OpenAI client...")
openai_client = OpenAIClient()
logger.info("OpenAI client initialized successfully")

logger.info("Initializing Supabase client...")
try:
    supabase: Client = create_client(settings.supabase_url, settings.supabase_key)
    logger.info("Supabase client initialized successfully")
except Exception as e:
    logger.error(f"Error initializing Supabase client: {str(e)}")
    raise

# Initialize services
logger.info("Initializing services...")
database = Database(supabase)
insight_service = InsightService(openai_client, model=settings.insights_model)
profile_synthesizer = ProfileSynthesizer(openai_client, model=settings.insights_model)
transcript_processor = TranscriptProcessor(database, insight_service, profile_synthesizer)
session_personalizer = SessionPersonalizer(
    database,
    openai_client,
    default_module=settings.default_module_name,
    model=settings.personalization_model
)
webhook_service = PostCallWebhookService(
    database,
    transcript_processor,
    session_personalizer,
    webhook_secret=settings.elevenlabs_webhook_secret,
    default_module=settings.default_module_name,
    min_duration_secs=settings.min_session_duration_secs
)
feedback_service = FeedbackService(openai_client, model=settings.insights_model)
goal_service = GoalService(database)
mood_service = MoodService(database)
voice_service = VoiceAgentService(
    api_key=settings.elevenlabs_api_key,
    agent_id=settings.agent_id,
    api_url=settings.elevenlabs_api_url
)
error_handler = ErrorHandler()
logger.info("All services initialized successfully")


def error_response(error: Exception, context: str):
    body, status = error_handler.handle_request_error(error, context)
    return jsonify(body), status


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@app.route('/', methods=['GET'])
def root():
    """Basic health check"""
    return jsonify({'status': 'healthy'})


@app.route('/ai-therapist/post-call-webhook', methods=['POST'])
async def post_call_webhook():
    """Receive the voice agent's post-call transcription event"""
    logger.info("Post-call webhook received")
    try:
        raw_body = request.get_data(as_text=True)
        result = await webhook_service.handle(raw_body, request.headers.get('elevenlabs-signature'))
        logger.info(f"Post-call webhook handled: {result}")
        return jsonify(result)
    except Exception as e:
        return error_response(e, 'Post-Call Webhook')


@app.route('/ai-therapist/process-transcript', methods=['POST'])
async def process_transcript():
    try:
        data = json_body()
        synthesized = await transcript_processor.process(
            user_id=data.get('userId'),
            conversation_id=data.get('conversationId'),
            transcript=data.get('transcript'),
            duration=data.get('duration')
        )
        return jsonify({'success': True, **synthesized.model_dump()})
    except Exception as e:
        return error_response(e, 'Process Transcript')


@app.route('/ai-therapist/synthesize-therapy-session', methods=['POST'])
async def synthesize_therapy_session():
    try:
        data = json_body()
        session = await session_personalizer.personalize(data.get('userId'), data.get('moduleName'))
        return jsonify(session.model_dump())
    except Exception as e:
        return error_response(e, 'Module Synthesis')


@app.route('/session-feedback', methods=['POST'])
async def session_feedback():
    try:
        feedback = await feedback_service.generate_feedback(json_body().get('transcript'))
        return jsonify(feedback.model_dump())
    except Exception as e:
        return error_response(e, 'Session Feedback')


@app.route('/elevenlabs-connection', methods=['GET'])
def elevenlabs_connection():
    try:
        return jsonify(voice_service.get_connection(request.args.get('user_email')))
    except Exception as e:
        return error_response(e, 'Voice Connection')


@app.route('/sessions/<session_id>', methods=['DELETE'])
def delete_session(session_id):
    try:
        user_id = get_authenticated_user_id(supabase, request.headers.get('Authorization'))

        session = database.get_session(session_id)
        if not session:
            raise AppError("Session not found", status_code=404)
        if session['user_id'] != user_id:
            raise AppError(f"User {user_id} does not own session {session_id}", status_code=403, user_message="Forbidden")

        database.delete_session(session_id, user_id)
        logger.info(f"Deleted session {session_id}")
        return jsonify({'success': True})
    except Exception as e:
        return error_response(e, 'Delete Session')


@app.route('/goals/manage', methods=['POST'])
def manage_goals():
    try:
        data = json_body()
        action = data.pop('action', None)
        user_id = data.pop('userId', None)
        goal_id = data.pop('goalId', None)
        return jsonify(goal_service.handle_action(action, user_id, goal_id, data))
    except Exception as e:
        return error_response(e, 'Goal Management')


@app.route('/goals/completions', methods=['POST'])
def goal_completions():
    try:
        data = json_body()
        report = goal_service.completion_report(
            data.get('userId'),
            data.get('knownCompletedIds') or [],
            data.get('date')
        )
        return jsonify(report)
    except Exception as e:
        return error_response(e, 'Goal Completions')


@app.route('/moods', methods=['GET'])
def list_moods():
    try:
        user_id = get_authenticated_user_id(supabase, request.headers.get('Authorization'))
        return jsonify({'moods': mood_service.list_moods(user_id)})
    except Exception as e:
        return error_response(e, 'List Moods')


@app.route('/moods', methods=['POST'])
def update_moods():
    try:
        user_id = get_authenticated_user_id(supabase, request.headers.get('Authorization'))
        data = json_body()
        action = data.pop('action', None)
        return jsonify(mood_service.handle_action(action, user_id, data))
    except Exception as e:
        return error_response(e, 'Update Moods')
