"""
MedSimplify - Text Generation Clients

Thin async wrappers around the external language model providers.
Each wrapper performs exactly one call per request and reports every
failure as UpstreamFailure; retries are left to the caller.
"""

from typing import Optional, Dict, Any

from google import genai
from google.genai import types
from openai import AsyncOpenAI

from medsimplify.config import Settings
from medsimplify.core.errors import UpstreamFailure
from medsimplify.utils.logger import get_logger

logger = get_logger("llm_engine")


class TextGenerator:
    """Base class for text-generation providers."""

    provider: str = "none"

    def __init__(self, api_key: str, model: str, timeout: float = 60.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def is_configured(self) -> bool:
        """Check whether an API key is available."""
        return bool(self.api_key)

    async def generate(
        self,
        system: str,
        user: str,
        temperature: float = 0.2,
        max_tokens: int = 800
    ) -> str:
        """
        Generate a reply for a system + user instruction pair.

        Args:
            system: System instruction (persona and output rules)
            user: User instruction (report and request details)
            temperature: Sampling randomness
            max_tokens: Output length cap

        Returns:
            Raw reply text

        Raises:
            UpstreamFailure: On missing key, provider error or empty reply
        """
        if not self.is_configured():
            raise UpstreamFailure(f"{self.provider} API key not configured")

        try:
            text = await self._complete(system, user, temperature, max_tokens)
        except UpstreamFailure:
            raise
        except Exception as e:
            raise UpstreamFailure(f"{self.provider} request failed: {e}") from e

        if not text or not text.strip():
            raise UpstreamFailure(f"{self.provider} returned an empty reply")

        logger.info(
            "Text generation completed",
            provider=self.provider,
            model=self.model,
            reply_length=len(text)
        )
        return text

    async def _complete(
        self,
        system: str,
        user: str,
        temperature: float,
        max_tokens: int
    ) -> Optional[str]:
        raise NotImplementedError

    def get_status(self) -> Dict[str, Any]:
        """Get provider status information."""
        return {
            "provider": self.provider,
            "model": self.model,
            "configured": self.is_configured()
        }


class OpenAITextGenerator(TextGenerator):
    """OpenAI chat completions."""

    provider = "openai"

    def __init__(self, api_key: str, model: str, timeout: float = 60.0):
        super().__init__(api_key, model, timeout)
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0
            )
        return self._client

    async def _complete(
        self,
        system: str,
        user: str,
        temperature: float,
        max_tokens: int
    ) -> Optional[str]:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user}
            ],
            temperature=temperature,
            max_tokens=max_tokens
        )
        if not response.choices:
            return None
        return response.choices[0].message.content


class GeminiTextGenerator(TextGenerator):
    """Google Gemini via the google-genai SDK."""

    provider = "gemini"

    def __init__(self, api_key: str, model: str, timeout: float = 60.0):
        super().__init__(api_key, model, timeout)
        self._client: Optional[genai.Client] = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout * 1000))
            )
        return self._client

    async def _complete(
        self,
        system: str,
        user: str,
        temperature: float,
        max_tokens: int
    ) -> Optional[str]:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=user,
            config=types.GenerateContentConfig(
                system_instruction=system,
                temperature=temperature,
                max_output_tokens=max_tokens
            )
        )
        return response.text


def build_text_generator(settings: Settings) -> TextGenerator:
    """
    Create the text generator for the configured provider.

    Args:
        settings: Application settings

    Returns:
        Provider-specific TextGenerator
    """
    if settings.llm_provider == "gemini":
        generator: TextGenerator = GeminiTextGenerator(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.llm_timeout_seconds
        )
    else:
        generator = OpenAITextGenerator(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.llm_timeout_seconds
        )

    logger.info(
        "Text generator initialized",
        provider=generator.provider,
        model=generator.model,
        configured=generator.is_configured()
    )
    return generator
