import logging
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List, Optional, Iterable, Set

from lib.database import Database
from lib.error_handler import AppError

logger = logging.getLogger(__name__)

GOAL_TYPES = ('basic', 'counter', 'progress', 'list')
CLEANUP_AFTER_DAYS = 30
DEFAULT_PROGRESS_TARGET = 100

# PostgREST trims trailing zeros from fractional seconds
_FRACTION = re.compile(r'\.(\d+)')


def parse_timestamp(value: str) -> datetime:
    text = str(value).strip().replace('Z', '+00:00')
    text = _FRACTION.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text, count=1)
    return datetime.fromisoformat(text)


def completion_date(goal: Dict[str, Any]) -> Optional[str]:
    """UTC calendar date (YYYY-MM-DD) a goal was completed on, if any"""
    completed_at = goal.get('completed_at')
    if not completed_at:
        return None
    parsed = parse_timestamp(completed_at)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


class GoalCompletionTracker:
    """
    Tracks which goals became completed since a known snapshot.

    One tracker is built per request from the ids the caller already knows
    are completed, so nothing is shared between users or requests.
    """

    def __init__(self, known_completed_ids: Iterable[str] = ()):
        self.goals: List[Dict[str, Any]] = []
        self.known_completed_ids: Set[str] = {str(i) for i in known_completed_ids}
        self.newly_completed_ids: Set[str] = set()

    def update(self, goals: List[Dict[str, Any]]) -> None:
        previously_completed = set(self.known_completed_ids)
        previously_completed.update(str(g['id']) for g in self.goals if g.get('completed_at'))

        currently_completed = {str(g['id']) for g in goals if g.get('completed_at')}

        self.goals = goals
        self.known_completed_ids = currently_completed
        self.newly_completed_ids = currently_completed - previously_completed

    def newly_completed(self) -> List[Dict[str, Any]]:
        return [g for g in self.goals if str(g['id']) in self.newly_completed_ids]

    def completed_on(self, date: str) -> List[Dict[str, Any]]:
        return [g for g in self.goals if completion_date(g) == date]

    def is_newly_completed_on(self, goal_id: str, date: str) -> bool:
        if str(goal_id) not in self.newly_completed_ids:
            return False
        goal = next((g for g in self.goals if str(g['id']) == str(goal_id)), None)
        return bool(goal) and completion_date(goal) == date


class GoalService:
    def __init__(self, database: Database):
        self.db = database

    def _require_goal(self, goal_id: str, user_id: str) -> Dict[str, Any]:
        goal = self.db.get_goal(goal_id, user_id)
        if not goal:
            raise AppError("Goal not found", status_code=404)
        return goal

    def _require_list_goal(self, goal_id: str, user_id: str) -> Dict[str, Any]:
        goal = self._require_goal(goal_id, user_id)
        if goal.get('goal_type') != 'list':
            raise AppError("Goal is not a list type", status_code=400)
        return goal

    def _save(self, goal_id: str, user_id: str, updates: Dict[str, Any], action: str) -> Dict[str, Any]:
        updated = self.db.update_goal(goal_id, user_id, updates)
        if not updated:
            raise AppError(f"Failed to {action}", status_code=500)
        return updated

    def update_progress(
        self,
        goal_id: str,
        user_id: str,
        increment: Optional[float] = None,
        set_value: Optional[float] = None,
        target_value: Optional[float] = None
    ) -> Dict[str, Any]:
        if not goal_id:
            raise AppError("Missing goalId", status_code=400)
        goal = self._require_goal(goal_id, user_id)

        new_value = goal.get('current_value') or 0
        if increment is not None:
            new_value = max(0, new_value + increment)
        elif set_value is not None:
            new_value = max(0, set_value)

        updates: Dict[str, Any] = {'current_value': new_value}
        if target_value is not None:
            updates['target_value'] = target_value

        target = target_value if target_value is not None else goal.get('target_value')
        if goal.get('goal_type') == 'progress' and target and new_value >= target:
            updates['completed_at'] = datetime.utcnow().isoformat()

        return self._save(goal_id, user_id, updates, "update goal")

    def archive_goal(self, goal_id: str, user_id: str, reason: str = 'completed') -> Dict[str, Any]:
        if not goal_id:
            raise AppError("Missing goalId", status_code=400)
        return self._save(goal_id, user_id, {
            'archived_at': datetime.utcnow().isoformat(),
            'archived_reason': reason or 'completed',
            'is_active': False
        }, "archive goal")

    def cleanup_completed(self, user_id: str) -> int:
        """Archive goals that were completed more than thirty days ago"""
        cutoff = datetime.utcnow() - timedelta(days=CLEANUP_AFTER_DAYS)
        completed = self.db.get_goals_completed_before(user_id, cutoff)
        if not completed:
            return 0
        self.db.archive_goals([g['id'] for g in completed], user_id, 'completed')
        logger.info(f"Archived {len(completed)} completed goals for user {user_id}")
        return len(completed)

    def update_goal_type(
        self,
        goal_id: str,
        user_id: str,
        goal_type: str,
        target_value: Optional[float] = None,
        current_value: Optional[float] = None
    ) -> Dict[str, Any]:
        if not goal_id or not goal_type:
            raise AppError("Missing goalId or goalType", status_code=400)
        if goal_type not in GOAL_TYPES:
            raise AppError(f"Invalid goal type: {goal_type}", status_code=400)

        updates: Dict[str, Any] = {'goal_type': goal_type}
        if goal_type == 'basic':
            updates.update(current_value=0, target_value=None)
        elif goal_type == 'counter':
            updates.update(current_value=current_value or 0, target_value=None)
        elif goal_type == 'progress':
            updates.update(current_value=current_value or 0, target_value=target_value or DEFAULT_PROGRESS_TARGET)
        else:
            updates.update(current_value=0, target_value=None, list_items=[])

        return self._save(goal_id, user_id, updates, "update goal type")

    def add_list_item(self, goal_id: str, user_id: str, value: str, notes: Optional[str] = None) -> Dict[str, Any]:
        if not goal_id or not value:
            raise AppError("Missing goalId or value", status_code=400)
        goal = self._require_list_goal(goal_id, user_id)

        item = {
            'id': str(uuid.uuid4()),
            'value': value.strip(),
            'timestamp': datetime.utcnow().isoformat()
        }
        if notes and notes.strip():
            item['notes'] = notes.strip()

        items = list(goal.get('list_items') or []) + [item]
        return self._save(goal_id, user_id, {'list_items': items, 'current_value': len(items)}, "add list item")

    def remove_list_item(self, goal_id: str, user_id: str, item_id: str) -> Dict[str, Any]:
        if not goal_id or not item_id:
            raise AppError("Missing goalId or itemId", status_code=400)
        goal = self._require_list_goal(goal_id, user_id)

        items = [i for i in (goal.get('list_items') or []) if i.get('id') != item_id]
        return self._save(goal_id, user_id, {'list_items': items, 'current_value': len(items)}, "remove list item")

    def handle_action(self, action: str, user_id: str, goal_id: Optional[str], data: Dict[str, Any]) -> Dict[str, Any]:
        """Dispatch a goal management action to its handler"""
        if not user_id:
            raise AppError("Missing userId", status_code=400)

        if action == 'update_progress':
            goal = self.update_progress(
                goal_id, user_id,
                increment=data.get('increment'),
                set_value=data.get('setValue'),
                target_value=data.get('targetValue')
            )
        elif action == 'archive_goal':
            goal = self.archive_goal(goal_id, user_id, data.get('reason') or 'completed')
        elif action == 'cleanup_completed':
            count = self.cleanup_completed(user_id)
            message = f"Archived {count} completed goals" if count else "No completed goals to archive"
            return {'success': True, 'message': message, 'archivedCount': count}
        elif action == 'update_goal_type':
            goal = self.update_goal_type(
                goal_id, user_id, data.get('goalType'),
                target_value=data.get('targetValue'),
                current_value=data.get('currentValue')
            )
        elif action == 'add_list_item':
            goal = self.add_list_item(goal_id, user_id, data.get('value'), data.get('notes'))
        elif action == 'remove_list_item':
            goal = self.remove_list_item(goal_id, user_id, data.get('itemId'))
        else:
            raise AppError("Invalid action", status_code=400)

        return {'success': True, 'goal': goal}

    def completion_report(self, user_id: str, known_completed_ids: Iterable[str], date: Optional[str] = None) -> Dict[str, Any]:
        if not user_id:
            raise AppError("Missing userId", status_code=400)

        tracker = GoalCompletionTracker(known_completed_ids)
        tracker.update(self.db.get_active_goals(user_id))

        report = {
            'newlyCompleted': tracker.newly_completed(),
            'completedIds': sorted(tracker.known_completed_ids)
        }
        if date:
            completed_on_date = tracker.completed_on(date)
            report['completedOnDate'] = completed_on_date
            report['newlyCompletedOnDate'] = [
                g for g in completed_on_date if tracker.is_newly_completed_on(g['id'], date)
            ]
        return report
