import logging
from typing import List

from api.models import TherapyInsights
from lib.openai_client import OpenAIClient
from lib.text_blocks import unique_items

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an assistant helping maintain a therapy profile."

class ProfileSynthesizer:
    def __init__(self, openai_client: OpenAIClient, model: str = None):
        self.client = openai_client
        self.model = model

    def _build_prompt(
        self,
        old_bio: str,
        old_summary: str,
        old_goals: List[str],
        old_themes: List[str],
        new_insights: TherapyInsights
    ) -> str:
        return f"""
You are an assistant helping maintain a therapy profile. DO NOT simply copy the new bio or summary. Instead, use it to improve or subtly extend the existing content.

The **Bio** should be written in THIRD-PERSON as a therapist's case note about the client.
It should sound like a therapist's case summary or intake note, using phrases like:
- "A <descriptive> person who ..."
- "They are experiencing..."
- "The client has..."

Avoid first-person phrasing like "I" or "my". Use clear, concise observations, not speculation or analysis.
The final compiled bio should be very readable and at maximum 4 sentences.

CRITICAL: The **Therapy Summary** (different from Bio) MUST be written in second-person ("you") voice throughout. This is text that will be shown TO the client, so speak directly to them using "you", never third-person.

FORBIDDEN WORDS in Therapy Summary: "the individual", "they", "the client", "sessions have", "discussions have".
REQUIRED WORDS in Therapy Summary: "You have", "Your sessions", "You've", "You are", "You discussed".

The **Therapy Summary** is a summary of all sessions (not just the current one). For example: "You have been working on...", "Your sessions have focused on...", "You've made progress in...".
The final compiled therapy Summary should be very readable and at maximum 4 sentences, always in second-person voice.

The **Goals** should move old goals down the list and prepend new ones to the top.

The **Themes** should track therapy-relevant recurring themes over time.

Incorporate new insights only if they are not already represented.

Respond with updated values only. Return nothing else.

Format:

Title:
<a short and relevant session title. Avoid quotes or emojis. Use Title Case.>

Bio:
<updated bio>

TherapySummary:
<updated therapy summary>

Goals:
- <goal 1>
- <goal 2>

Themes:
- <theme 1>
- <theme 2>

Old Data:
Bio: {old_bio}
TherapySummary: {old_summary}
Goals: {', '.join(old_goals)}
Themes: {', '.join(old_themes)}

New Session Data:
Bio: {new_insights.bio}
Summary: {new_insights.summary}
Goals: {', '.join(new_insights.goals)}
Themes: {', '.join(new_insights.themes)}
"""

    async def synthesize(
        self,
        old_bio: str,
        old_summary: str,
        old_goals: List[str],
        old_themes: List[str],
        new_insights: TherapyInsights
    ) -> TherapyInsights:
        """
        Merge the stored profile with insights from the latest session.

        Ordering and prioritisation are left to the model; only exact
        repeats are removed from the returned goal and theme lists.
        """
        prompt = self._build_prompt(old_bio, old_summary, old_goals, old_themes, new_insights)
        raw = await self.client.generate_response(
            prompt=prompt,
            system_prompt=SYSTEM_PROMPT,
            model=self.model
        )

        merged = TherapyInsights.parse(raw)
        merged.goals = unique_items(merged.goals)
        merged.themes = unique_items(merged.themes)
        logger.info(
            f"Synthesized profile: title={merged.title!r}, "
            f"goals={merged.goals}, themes={merged.themes}"
        )
        return merged
