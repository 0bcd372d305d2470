import logging

from api.models import TherapyInsights
from lib.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a therapy assistant helping summarize therapy sessions."

class InsightService:
    def __init__(self, openai_client: OpenAIClient, model: str = None):
        self.client = openai_client
        self.model = model

    def _build_prompt(self, transcript: str) -> str:
        """Build the summarization prompt for a session transcript"""
        return f"""
You are a therapy assistant helping summarize therapy sessions. Analyze the transcript below and return the following five outputs.

1. A relevant session title (no quotes or emojis, in Title Case).
2. A brief summary in second-person ("you") voice, speaking directly TO the client. Use "you" throughout - for example: "You discussed your anxiety about...", "You explored strategies for...", "You reflected on...". Never use third-person pronouns like "the individual", "they", "the client", etc.
3. A "Goals:" section - Extract any actionable goals, intentions, or things the client wants to work on. Look for statements about what they want to achieve, improve, or change. If no explicit goals, infer from their concerns.
4. A "Themes:" section - Key topics or patterns discussed in the session.
5. A "Bio:" section (only if new information emerges) - This should be in THIRD-PERSON as therapist notes about the client (e.g., "The client is experiencing...", "They mentioned...").

Format:
Title:
<session title>

Summary:
<summary>

Goals:
- goal 1
- goal 2

Themes:
- theme 1
- theme 2

Bio:
<new bio insights>

Transcript:
{transcript}
"""

    async def get_therapy_insights(self, transcript: str) -> TherapyInsights:
        """Extract title, summary, goals, themes and bio from a transcript"""
        logger.info(f"Generating insights for transcript of {len(transcript)} chars")
        raw = await self.client.generate_response(
            prompt=self._build_prompt(transcript),
            system_prompt=SYSTEM_PROMPT,
            model=self.model
        )
        insights = TherapyInsights.parse(raw)
        logger.info(
            f"Insights extracted: title={insights.title!r}, "
            f"{len(insights.goals)} goals, {len(insights.themes)} themes"
        )
        return insights
