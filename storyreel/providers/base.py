"""
Abstract base class for text providers using LangChain
"""

import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel

from storyreel.utils.logger import get_logger

logger = get_logger(__name__)


class ProviderResponse(BaseModel):
    """Response from a text provider"""

    content: str
    usage: Optional[Dict[str, Any]] = None
    model: Optional[str] = None
    structured: Optional[Dict[str, Any]] = None


class BaseProvider(ABC):
    """Abstract base class for text providers using LangChain"""

    def __init__(self, api_base: str, api_key: str, model_name: str):
        self.api_base = api_base
        self.api_key = api_key
        self.model_name = model_name
        self.llm: Any = None  # Will be set by subclasses

    def _log_llm_call(self, messages: List[BaseMessage], **kwargs) -> str:
        """Log LLM call details and return a call ID for correlation"""
        call_id = str(uuid.uuid4())[:8]
        message_counts: Dict[str, int] = {}
        total_chars = 0
        for msg in messages:
            msg_type = type(msg).__name__
            message_counts[msg_type] = message_counts.get(msg_type, 0) + 1
            total_chars += len(str(msg.content))

        logger.info(
            f"[LLM] Call started: {self.model_name}",
            extra={
                "component": "LLM",
                "call_id": call_id,
                "model": self.model_name,
                "provider": self.__class__.__name__,
                "message_count": len(messages),
                "message_types": message_counts,
                "total_input_chars": total_chars,
                "temperature": kwargs.get("temperature", "default"),
                "max_tokens": kwargs.get("max_tokens", "default"),
                "structured": kwargs.get("json_schema") is not None,
            },
        )
        return call_id

    def _log_llm_response(
        self,
        call_id: str,
        response: Optional[ProviderResponse],
        duration_ms: float,
        error: Optional[Exception] = None,
    ):
        """Log LLM response details"""
        if error:
            logger.error(
                f"[LLM] Call failed: {self.model_name} ({duration_ms}ms): {str(error)}",
                extra={
                    "component": "LLM",
                    "call_id": call_id,
                    "model": self.model_name,
                    "provider": self.__class__.__name__,
                    "duration_ms": duration_ms,
                    "error": str(error),
                    "error_type": type(error).__name__,
                },
            )
            return

        content = response.content if response else ""
        logger.info(
            f"[LLM] Call completed: {self.model_name} ({duration_ms}ms)",
            extra={
                "component": "LLM",
                "call_id": call_id,
                "model": self.model_name,
                "provider": self.__class__.__name__,
                "duration_ms": duration_ms,
                "response_chars": len(content),
                "usage": response.usage if response else None,
            },
        )

    @abstractmethod
    async def chat(
        self,
        messages: List[BaseMessage],
        json_schema: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> ProviderResponse:
        """
        Send a chat request to the LLM

        Args:
            messages: List of LangChain message objects
            json_schema: Optional JSON schema for structured output
            **kwargs: Additional parameters (temperature, max_tokens)

        Returns:
            ProviderResponse; ``structured`` is set when a schema was given
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is healthy and accessible"""
        pass

    def _convert_messages(self, messages: List[Dict[str, str]]) -> List[BaseMessage]:
        """Convert dict messages to LangChain message objects"""
        converted: List[BaseMessage] = []
        for msg in messages:
            role = msg["role"]
            content = msg["content"]

            if role == "system":
                converted.append(SystemMessage(content=content))
            elif role == "user":
                converted.append(HumanMessage(content=content))
            elif role == "assistant":
                converted.append(AIMessage(content=content))

        return converted
