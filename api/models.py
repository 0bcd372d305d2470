from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field

from lib.text_blocks import extract_block, extract_list, extract_between


class TherapyInsights(BaseModel):
    title: str = ''
    summary: str = ''
    goals: List[str] = Field(default_factory=list)
    themes: List[str] = Field(default_factory=list)
    bio: str = ''

    @classmethod
    def parse(cls, raw: str) -> "TherapyInsights":
        """Build insights from labeled model output"""
        return cls(
            title=extract_block(raw, 'Title'),
            summary=extract_block(raw, 'Summary') or extract_block(raw, 'TherapySummary'),
            goals=extract_list(raw, 'Goals'),
            themes=extract_list(raw, 'Themes'),
            bio=extract_block(raw, 'Bio'),
        )


class UserProfile(BaseModel):
    id: str
    bio: str = ''
    therapy_summary: str = ''
    goals: str = ''
    themes: str = ''

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UserProfile":
        # Nullable columns come back as None
        return cls(
            id=str(row.get('id')),
            bio=row.get('bio') or '',
            therapy_summary=row.get('therapy_summary') or '',
            goals=row.get('goals') or '',
            themes=row.get('themes') or '',
        )

    @property
    def theme_list(self) -> List[str]:
        return [t.strip() for t in self.themes.split(',') if t.strip()]

    @property
    def goal_list(self) -> List[str]:
        return [g.strip() for g in self.goals.split('\n') if g.strip()]


class SessionTemplate(BaseModel):
    name: Optional[str] = None
    greeting: str = ''
    instructions: str = ''
    agenda: str = ''

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SessionTemplate":
        return cls(
            name=row.get('name'),
            greeting=row.get('greeting') or '',
            instructions=row.get('instructions') or '',
            agenda=row.get('agenda') or '',
        )


class PersonalizedSession(BaseModel):
    greeting: str = ''
    instructions: str = ''
    agenda: str = ''

    @classmethod
    def parse(cls, raw: str) -> "PersonalizedSession":
        return cls(
            greeting=extract_between(raw, 'Greeting', 'Instructions'),
            instructions=extract_between(raw, 'Instructions', 'Agenda'),
            agenda=extract_between(raw, 'Agenda'),
        )


class FeedbackNotes(BaseModel):
    next_steps: str = ''
    insight: str = ''
    challenge: str = ''

    @classmethod
    def parse(cls, raw: str) -> "FeedbackNotes":
        return cls(
            next_steps=extract_block(raw, 'Next Steps'),
            insight=extract_block(raw, 'Insight'),
            challenge=extract_block(raw, 'Challenge'),
        )
