import logging
from typing import Dict, Any, Optional
import requests

from lib.error_handler import AppError

logger = logging.getLogger(__name__)

SIGNED_URL_PATH = '/v1/convai/conversation/get_signed_url'

class VoiceAgentService:
    def __init__(self, api_key: str, agent_id: str, api_url: str = 'https://api.elevenlabs.io'):
        self.api_key = api_key
        self.agent_id = agent_id
        self.api_url = api_url.rstrip('/')

    def get_connection(self, user_email: Optional[str] = None) -> Dict[str, Any]:
        """Fetch a signed conversation URL for the voice agent"""
        if not self.agent_id:
            raise AppError("AGENT_ID is not set", status_code=500, user_message="AGENT_ID is not set")

        try:
            response = requests.get(
                f"{self.api_url}{SIGNED_URL_PATH}",
                params={'agent_id': self.agent_id},
                headers={'xi-api-key': self.api_key},
                timeout=10
            )
            response.raise_for_status()
            signed_url = response.json()['signed_url']
        except (requests.exceptions.RequestException, KeyError, ValueError) as e:
            logger.error(f"Error generating signed URL: {str(e)}")
            raise AppError(f"Failed to get signed URL: {str(e)}", status_code=500, user_message="Failed to get signed URL")

        logger.info("Generated signed conversation URL")
        connection = {'signedUrl': signed_url}
        # The webhook resolves the user from this variable once the call ends
        if user_email:
            connection['dynamicVariables'] = {'user_email': user_email}
        return connection
