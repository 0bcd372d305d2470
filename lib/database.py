from datetime import datetime
from typing import Dict, List, Optional, Any
import logging
from supabase import Client

from lib.error_handler import AppError

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = 'id, bio, therapy_summary, goals, themes'
TEMPLATE_COLUMNS = 'name, greeting, instructions, agenda'

class Database:
    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client
        self.users_table = 'users'
        self.sessions_table = 'sessions'
        self.goals_table = 'goals'
        self.modules_table = 'therapy_modules'
        self.next_sessions_table = 'next_sessions'
        self.moods_table = 'custom_moods'
        self.mood_preferences_table = 'user_mood_preferences'

    def _execute(self, query, action: str):
        try:
            result = query.execute()
        except Exception as e:
            raise AppError(f"Database error while trying to {action}: {str(e)}", status_code=500)
        if hasattr(result, 'error') and result.error:
            raise AppError(f"Database error while trying to {action}: {result.error}", status_code=500)
        return result

    def _first(self, query, action: str) -> Optional[Dict[str, Any]]:
        result = self._execute(query.limit(1), action)
        return result.data[0] if result.data else None

    # Users

    def get_user_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._first(
            self.supabase.table(self.users_table).select(PROFILE_COLUMNS).eq('id', user_id),
            "fetch user profile"
        )

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self._first(
            self.supabase.table(self.users_table).select('id, email').eq('email', email),
            "look up user by email"
        )

    def update_user_profile(self, user_id: str, fields: Dict[str, Any]) -> None:
        logger.info(f"Updating profile for user {user_id}: {list(fields.keys())}")
        self._execute(
            self.supabase.table(self.users_table).update(fields).eq('id', user_id),
            "update user profile"
        )

    # Sessions

    def insert_session(self, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        logger.info(f"Storing session {record.get('conversation_id')} for user {record.get('user_id')}")
        result = self._execute(
            self.supabase.table(self.sessions_table).insert(record),
            "store session"
        )
        return result.data[0] if result.data else None

    def update_session(self, conversation_id: str, user_id: str, fields: Dict[str, Any]) -> None:
        self._execute(
            self.supabase.table(self.sessions_table)
                .update(fields)
                .eq('conversation_id', conversation_id)
                .eq('user_id', user_id),
            "update session"
        )

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        return self._first(
            self.supabase.table(self.sessions_table).select('id, user_id').eq('id', session_id),
            "fetch session"
        )

    def delete_session(self, session_id: str, user_id: str) -> None:
        self._execute(
            self.supabase.table(self.sessions_table)
                .delete()
                .eq('id', session_id)
                .eq('user_id', user_id),
            "delete session"
        )

    # Goals

    def get_active_goals(self, user_id: str) -> List[Dict[str, Any]]:
        result = self._execute(
            self.supabase.table(self.goals_table)
                .select('*')
                .eq('user_id', user_id)
                .eq('is_active', True),
            "fetch active goals"
        )
        return result.data or []

    def get_goal(self, goal_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return self._first(
            self.supabase.table(self.goals_table)
                .select('*')
                .eq('id', goal_id)
                .eq('user_id', user_id),
            "fetch goal"
        )

    def insert_goals(self, goals: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        result = self._execute(
            self.supabase.table(self.goals_table).insert(goals),
            "insert goals"
        )
        return result.data or []

    def update_goal(self, goal_id: str, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.supabase.table(self.goals_table)
                .update(updates)
                .eq('id', goal_id)
                .eq('user_id', user_id),
            "update goal"
        )
        return result.data[0] if result.data else None

    def get_goals_completed_before(self, user_id: str, cutoff: datetime) -> List[Dict[str, Any]]:
        result = self._execute(
            self.supabase.table(self.goals_table)
                .select('id')
                .eq('user_id', user_id)
                .eq('is_active', True)
                .lt('completed_at', cutoff.isoformat()),
            "fetch completed goals"
        )
        return result.data or []

    def archive_goals(self, goal_ids: List[str], user_id: str, reason: str) -> None:
        self._execute(
            self.supabase.table(self.goals_table)
                .update({
                    'archived_at': datetime.utcnow().isoformat(),
                    'archived_reason': reason,
                    'is_active': False
                })
                .in_('id', goal_ids)
                .eq('user_id', user_id),
            "archive goals"
        )

    # Templates and next sessions

    def get_therapy_module(self, name: str) -> Optional[Dict[str, Any]]:
        return self._first(
            self.supabase.table(self.modules_table).select(TEMPLATE_COLUMNS).eq('name', name),
            "fetch therapy module"
        )

    def upsert_next_session(self, record: Dict[str, Any]) -> None:
        logger.info(f"Upserting next session for user {record.get('user_id')}")
        self._execute(
            self.supabase.table(self.next_sessions_table).upsert(record, on_conflict='user_id'),
            "store next session"
        )

    def get_next_session(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._first(
            self.supabase.table(self.next_sessions_table).select('*').eq('user_id', user_id),
            "fetch next session"
        )

    # Moods

    def get_user_moods(self, user_id: str) -> List[Dict[str, Any]]:
        result = self._execute(
            self.supabase.rpc('get_user_moods', {'p_user_id': user_id}),
            "fetch moods"
        )
        return result.data or []

    def find_active_mood(self, user_id: str, value: str) -> Optional[Dict[str, Any]]:
        return self._first(
            self.supabase.table(self.moods_table)
                .select('id')
                .eq('user_id', user_id)
                .eq('value', value)
                .eq('is_active', True),
            "look up mood"
        )

    def insert_mood(self, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.supabase.table(self.moods_table).insert(record),
            "create mood"
        )
        return result.data[0] if result.data else None

    def update_mood(self, mood_id: str, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.supabase.table(self.moods_table)
                .update(updates)
                .eq('id', mood_id)
                .eq('user_id', user_id),
            "update mood"
        )
        return result.data[0] if result.data else None

    def upsert_mood_order(self, user_id: str, mood_order: List[Any]) -> None:
        self._execute(
            self.supabase.table(self.mood_preferences_table).upsert(
                {'user_id': user_id, 'mood_order': mood_order},
                on_conflict='user_id'
            ),
            "update mood order"
        )
