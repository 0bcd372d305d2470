import logging

from api.models import PersonalizedSession, SessionTemplate, UserProfile
from lib.database import Database
from lib.error_handler import AppError
from lib.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

class SessionPersonalizer:
    def __init__(self, database: Database, openai_client: OpenAIClient, default_module: str, model: str = None):
        self.db = database
        self.client = openai_client
        self.default_module = default_module
        self.model = model

    def _build_prompt(self, template: SessionTemplate, profile: UserProfile) -> str:
        return f"""
You are a clinical therapy assistant that personalizes structured session modules based on a client's current profile.

Below is the original session template:
Greeting: {template.greeting}
Instructions: {template.instructions}
Agenda: {template.agenda}

Here is the client's current profile:
Bio: {profile.bio or '[none]'}
Goals: {profile.goals or '[none]'}
Themes: {profile.themes or '[none]'}
Therapy Summary: {profile.therapy_summary or '[none]'}

Please adapt the three fields below using the following guidelines:

- Greeting: Use warm, natural language as a therapist would to begin a session. Mention any progress, concern, or tone that feels relevant.
- Instructions: Keep brief and clear. This is what the conversational agent will follow structurally. Adjust it only if necessary for flow or pacing, and preserve its structure and length.
- Agenda: Move the macro therapy arc forward. Think like a real therapist: what would be the next step based on their progress, themes, or struggles? Frame the agenda as a sequence of topics or questions the agent should cover, with some flexibility.

Respond using this exact format:

Greeting: ...
Instructions: ...
Agenda: ...
"""

    async def personalize(self, user_id: str, module_name: str = None) -> PersonalizedSession:
        """Adapt a session template to the user's profile and store it as their next session"""
        if not user_id:
            raise AppError("Missing userId", status_code=400)

        row = self.db.get_user_profile(user_id)
        if not row:
            raise AppError("User not found", status_code=404)
        profile = UserProfile.from_row(row)

        module_name = module_name or self.default_module
        module_row = self.db.get_therapy_module(module_name)
        if not module_row:
            raise AppError("Therapy module not found", status_code=404)
        template = SessionTemplate.from_row(module_row)

        raw = await self.client.generate_output(self._build_prompt(template, profile), model=self.model)
        session = PersonalizedSession.parse(raw)
        if not (session.greeting and session.instructions and session.agenda):
            logger.warning(f"Personalized session for user {user_id} has empty fields")

        self.db.upsert_next_session({
            'user_id': user_id,
            'greeting': session.greeting,
            'instructions': session.instructions,
            'agenda': session.agenda,
            'status': 'ready'
        })
        logger.info(f"Next session ready for user {user_id} from module '{module_name}'")
        return session
