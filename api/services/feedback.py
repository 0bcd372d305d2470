import logging

from api.models import FeedbackNotes
from lib.error_handler import AppError
from lib.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

class FeedbackService:
    def __init__(self, openai_client: OpenAIClient, model: str = None):
        self.client = openai_client
        self.model = model

    def _build_prompt(self, transcript: str) -> str:
        return f"""
You are a therapist reviewing a session transcript. Return a structured analysis in three parts:

1. Next Steps: Brief, bulleted one-sentence practical and helpful next actions or contemplations for the client.
2. Insight: A thoughtful reflection or reframe that deepens the client's self-understanding.
3. Challenge: A respectful but direct challenge to a core assumption, belief, or pattern.

Do not use excessive praise or generic validation. Your tone should be intelligent, supportive, and willing to provoke growth. Language should be simple, readable, and brief.

Use this format and do not bold any sections:

Next Steps:
<text>

Insight:
<text>

Challenge:
<text>

Transcript:
{transcript}
"""

    async def generate_feedback(self, transcript: str) -> FeedbackNotes:
        if not transcript:
            raise AppError("Transcript is required.", status_code=400)

        raw = await self.client.generate_response(
            prompt=self._build_prompt(transcript),
            model=self.model,
            temperature=0.65
        )
        return FeedbackNotes.parse(raw)
