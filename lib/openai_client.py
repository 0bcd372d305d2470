from openai import OpenAI
from typing import Optional
import logging
from lib.config import get_settings
from lib.error_handler import AppError

settings = get_settings()
logger = logging.getLogger(__name__)

class OpenAIClient:
    def __init__(self, client: Optional[OpenAI] = None):
        self.client = client or OpenAI(api_key=settings.openai_api_key)

    async def generate_response(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None
    ) -> str:
        """
        Generate a completion using the OpenAI chat completions API
        """
        try:
            messages = []
            if system_prompt:
                messages.append({
                    "role": "system",
                    "content": system_prompt
                })

            messages.append({
                "role": "user",
                "content": prompt
            })

            params = {
                "model": model or settings.insights_model,
                "messages": messages
            }
            if temperature is not None:
                params["temperature"] = temperature

            response = self.client.chat.completions.create(**params)

            content = response.choices[0].message.content if response.choices else None
            return (content or "").strip()

        except Exception as e:
            raise AppError(f"Response generation failed: {str(e)}", status_code=500)

    async def generate_output(self, prompt: str, model: Optional[str] = None) -> str:
        """
        Generate text using the OpenAI responses API
        """
        try:
            response = self.client.responses.create(
                model=model or settings.personalization_model,
                input=prompt
            )
            return (response.output_text or "").strip()

        except Exception as e:
            raise AppError(f"Response generation failed: {str(e)}", status_code=500)
