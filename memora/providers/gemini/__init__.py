"""Gemini provider configuration."""
import os
from typing import Optional
from pydantic import Field, SecretStr
from memora.providers.base import ProviderConfig

API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")

class GeminiConfig(ProviderConfig):
    """Configuration for the Gemini provider."""
    api_key: Optional[SecretStr] = Field(default=None, description="Google AI Studio API key")
    request_timeout: int = Field(default=600, description="Request timeout in seconds")

    def resolve_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key.get_secret_value()
        for env_var in API_KEY_ENV_VARS:
            value = os.environ.get(env_var)
            if value:
                return value
        return None

# Alias for dynamic loading
Config = GeminiConfig
