import logging
from typing import Optional, Dict, Any, List

from api.models import TherapyInsights, UserProfile
from api.services.insights import InsightService
from api.services.profile import ProfileSynthesizer
from lib.database import Database
from lib.error_handler import AppError

logger = logging.getLogger(__name__)

class TranscriptProcessor:
    """
    Turns a finished session transcript into an updated session record,
    user profile and goal list.
    """

    def __init__(self, database: Database, insight_service: InsightService, synthesizer: ProfileSynthesizer):
        self.db = database
        self.insights = insight_service
        self.synthesizer = synthesizer

    async def process(
        self,
        user_id: str,
        conversation_id: str,
        transcript: str,
        duration: Optional[int] = None
    ) -> TherapyInsights:
        if not user_id or not conversation_id or not transcript:
            raise AppError("Missing required fields", status_code=400)

        row = self.db.get_user_profile(user_id)
        if not row:
            raise AppError("User not found", status_code=404)
        profile = UserProfile.from_row(row)

        new_insights = await self.insights.get_therapy_insights(transcript)

        existing_goal_titles = [g['title'] for g in self.db.get_active_goals(user_id) if g.get('title')]

        synthesized = await self.synthesizer.synthesize(
            old_bio=profile.bio,
            old_summary=profile.therapy_summary,
            old_goals=existing_goal_titles,
            old_themes=profile.theme_list,
            new_insights=new_insights
        )

        self.db.update_session(conversation_id, user_id, {
            'title': synthesized.title,
            'summary': synthesized.summary,
            'transcript': transcript,
            'duration': duration
        })

        self.db.update_user_profile(user_id, {
            'bio': synthesized.bio,
            'therapy_summary': synthesized.summary,
            'themes': ', '.join(synthesized.themes),
            'goals': '\n'.join(synthesized.goals)
        })

        self._store_new_goals(user_id, synthesized.goals, existing_goal_titles)

        logger.info(f"Processed transcript for conversation {conversation_id}")
        return synthesized

    def _store_new_goals(self, user_id: str, goals: List[str], existing_titles: List[str]) -> List[Dict[str, Any]]:
        """Insert goals the user is not already tracking; failures are logged only"""
        if not goals:
            logger.info("No goals extracted from session")
            return []

        existing = {title.lower() for title in existing_titles}
        new_goals = [
            {'user_id': user_id, 'title': goal, 'is_active': True}
            for goal in goals
            if goal.lower() not in existing
        ]
        if not new_goals:
            logger.info("No new goals to insert (all already exist)")
            return []

        try:
            inserted = self.db.insert_goals(new_goals)
            logger.info(f"Inserted {len(new_goals)} new goals for user {user_id}")
            return inserted
        except AppError as e:
            logger.error(f"Error inserting goals: {e.message}")
            return []
