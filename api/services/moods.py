import logging
from typing import Dict, Any, List

from lib.database import Database
from lib.error_handler import AppError

logger = logging.getLogger(__name__)

class MoodService:
    def __init__(self, database: Database):
        self.db = database

    def list_moods(self, user_id: str) -> List[Dict[str, Any]]:
        """Default moods plus the user's custom moods, in the user's order"""
        return self.db.get_user_moods(user_id)

    def create_custom_mood(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        emoji, label, value = data.get('emoji'), data.get('label'), data.get('value')
        if not emoji or not label or not value:
            raise AppError("Missing required fields", status_code=400)

        value = value.lower().strip()
        if self.db.find_active_mood(user_id, value):
            raise AppError("Mood with this value already exists", status_code=409)

        mood = self.db.insert_mood({
            'user_id': user_id,
            'emoji': emoji.strip(),
            'label': label.strip(),
            'value': value,
            'color_theme': data.get('colorTheme'),
            'sort_order': data.get('sortOrder', 0)
        })
        logger.info(f"Created custom mood '{value}' for user {user_id}")
        return mood

    def update_custom_mood(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        mood_id = data.get('moodId')
        if not mood_id:
            raise AppError("Missing mood ID", status_code=400)

        updates: Dict[str, Any] = {}
        if data.get('emoji') is not None:
            updates['emoji'] = data['emoji'].strip()
        if data.get('label') is not None:
            updates['label'] = data['label'].strip()
        if data.get('value') is not None:
            updates['value'] = data['value'].lower().strip()
        if 'colorTheme' in data:
            updates['color_theme'] = data['colorTheme']
        if data.get('sortOrder') is not None:
            updates['sort_order'] = data['sortOrder']

        mood = self.db.update_mood(mood_id, user_id, updates)
        if not mood:
            raise AppError("Mood not found", status_code=404)
        return mood

    def delete_custom_mood(self, user_id: str, data: Dict[str, Any]) -> None:
        mood_id = data.get('moodId')
        if not mood_id:
            raise AppError("Missing mood ID", status_code=400)
        # Soft delete
        self.db.update_mood(mood_id, user_id, {'is_active': False})

    def update_mood_order(self, user_id: str, data: Dict[str, Any]) -> None:
        mood_order = data.get('moodOrder')
        if not isinstance(mood_order, list):
            raise AppError("Invalid mood order data", status_code=400)
        self.db.upsert_mood_order(user_id, mood_order)

    def handle_action(self, action: str, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if action == 'create_custom_mood':
            return {'mood': self.create_custom_mood(user_id, data)}
        if action == 'update_custom_mood':
            return {'mood': self.update_custom_mood(user_id, data)}
        if action == 'delete_custom_mood':
            self.delete_custom_mood(user_id, data)
            return {'success': True}
        if action == 'update_mood_order':
            self.update_mood_order(user_id, data)
            return {'success': True}
        raise AppError("Invalid action", status_code=400)
