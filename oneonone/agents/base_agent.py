"""
Base class for Claude-backed agents
"""
import logging
from abc import ABC, abstractmethod
from oneonone.services.claude_service import claude_service
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class BaseAgent(ABC):

    def __init__(self, name: str):
        self.name = name
        self.claude = claude_service

    @property
    def is_available(self) -> bool:
        return self.claude.is_available

    @abstractmethod
    async def process(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Process the given context and return results
        """
        pass

    async def generate_structured_response(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        response_format: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Structured Claude call; a non-object reply is an error"""
        result = await self.claude.generate_structured_response(
            prompt, system_prompt, response_format
        )
        if not isinstance(result, dict):
            logger.error(f"{self.name}: expected a JSON object, got {type(result).__name__}")
            raise ValueError(f"{self.name} returned an unexpected response shape")
        return result
