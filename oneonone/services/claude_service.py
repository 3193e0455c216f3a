"""
Claude API service wrapper
"""
from anthropic import AsyncAnthropic
from oneonone.config import get_settings
from typing import Optional, Dict, Any
import json

settings = get_settings()


class ClaudeService:
    def __init__(self):
        api_key = settings.ANTHROPIC_API_KEY or None
        self.model = settings.CLAUDE_MODEL
        self.max_tokens = settings.CLAUDE_MAX_TOKENS
        self._available = bool(api_key)
        self.client = AsyncAnthropic(api_key=api_key) if self._available else None

    @property
    def is_available(self) -> bool:
        return self._available

    async def generate_response(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Single-turn completion; returns the text of the first content block
        """
        if not self._available or self.client is None:
            raise RuntimeError("Analysis service not configured: ANTHROPIC_API_KEY is not set")

        response = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens or self.max_tokens,
            temperature=temperature,
            system=system_prompt or "",
            messages=[{"role": "user", "content": prompt}],
        )

        return response.content[0].text

    async def generate_structured_response(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        response_format: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Completion constrained to a JSON object shaped like `response_format`
        """
        structured_prompt = f"""{prompt}

Respond with ONLY a valid JSON object matching this schema:
{json.dumps(response_format, indent=2)}

No markdown, no code fences, no commentary."""

        response_text = await self.generate_response(
            prompt=structured_prompt,
            system_prompt=system_prompt
        )

        # Strip a ```json fence if the model added one anyway
        response_text = response_text.strip()
        if response_text.startswith("```"):
            response_text = response_text.split("\n", 1)[1] if "\n" in response_text else ""
        if response_text.endswith("```"):
            response_text = response_text[:-3]
        response_text = response_text.strip()

        try:
            return json.loads(response_text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse Claude response as JSON: {e}")


# Singleton instance
claude_service = ClaudeService()
