"""
OpenAI provider implementation using LangChain
"""

import json
import time
from typing import Any, Dict, List, Optional

from langchain_core.messages import BaseMessage, HumanMessage
from langchain_openai import ChatOpenAI

from storyreel.utils.logger import get_logger
from storyreel.utils.retry import to_provider_error

from .base import BaseProvider, ProviderResponse

logger = get_logger(__name__)


class OpenAIProvider(BaseProvider):
    """OpenAI-compatible chat completions provider"""

    def __init__(
        self,
        api_base: str,
        api_key: str,
        model_name: str,
        timeout: Optional[float] = None,
    ):
        super().__init__(api_base, api_key, model_name)

        # Retries are handled by the engine's retry executor
        self.llm = ChatOpenAI(
            model=model_name,
            base_url=api_base,
            api_key=api_key,  # type: ignore
            temperature=0.7,
            timeout=timeout,
            max_retries=0,
        )

        logger.info(f"Initialized OpenAI provider for {model_name}")

    async def chat(
        self,
        messages: List[BaseMessage],
        json_schema: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> ProviderResponse:
        """Send chat request to the OpenAI API"""
        call_id = self._log_llm_call(messages, json_schema=json_schema, **kwargs)
        start_time = time.time()

        try:
            llm = self.llm

            if "temperature" in kwargs:
                llm = llm.bind(temperature=kwargs["temperature"])

            if "max_tokens" in kwargs:
                llm = llm.bind(max_tokens=kwargs["max_tokens"])

            if json_schema:
                structured_llm = self.llm.with_structured_output(
                    json_schema, method="json_schema"
                )
                result = await structured_llm.ainvoke(messages)
                structured = result if isinstance(result, dict) else dict(result)
                response = ProviderResponse(
                    content=json.dumps(structured),
                    model=self.model_name,
                    structured=structured,
                )
            else:
                result = await llm.ainvoke(messages)
                content = result.content if hasattr(result, "content") else str(result)
                response = ProviderResponse(
                    content=content if isinstance(content, str) else str(content),
                    usage=getattr(result, "usage_metadata", None),
                    model=self.model_name,
                )

            duration_ms = round((time.time() - start_time) * 1000, 2)
            self._log_llm_response(call_id, response, duration_ms)
            return response

        except Exception as e:
            duration_ms = round((time.time() - start_time) * 1000, 2)
            self._log_llm_response(call_id, None, duration_ms, error=e)
            raise to_provider_error(e, "OpenAI API error") from e

    async def health_check(self) -> bool:
        """Check if the OpenAI API is accessible"""
        try:
            await self.llm.ainvoke([HumanMessage(content="Hello")])
            return True
        except Exception:
            return False
