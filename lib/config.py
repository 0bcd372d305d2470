from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    # OpenAI settings
    openai_api_key: str = ''
    insights_model: str = 'gpt-4o-mini'
    personalization_model: str = 'gpt-4o'

    # Supabase settings
    supabase_url: str = ''
    supabase_key: str = ''

    # ElevenLabs settings
    elevenlabs_webhook_secret: str = ''
    elevenlabs_api_key: str = ''
    elevenlabs_api_url: str = 'https://api.elevenlabs.io'
    agent_id: str = ''

    # Session settings
    default_module_name: str = 'Default Daily Check In'
    min_session_duration_secs: int = 120

def get_settings() -> Settings:
    return Settings()
