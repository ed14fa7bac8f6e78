"""
Unit tests for the OpenAI-compatible text provider.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from storyreel.errors import FatalProviderError, TransientProviderError
from storyreel.providers import OpenAIProvider


@pytest.fixture
def provider():
    provider = OpenAIProvider(
        api_base="https://llm.test/v1", api_key="sk-test", model_name="gpt-4o-mini"
    )
    llm = MagicMock()
    llm.bind.return_value = llm
    llm.ainvoke = AsyncMock(
        return_value=AIMessage(content="Hello there", usage_metadata={
            "input_tokens": 3, "output_tokens": 2, "total_tokens": 5
        })
    )
    provider.llm = llm
    return provider


class TestOpenAIProvider:
    """Test chat calls through the LangChain client"""

    @pytest.mark.asyncio
    async def test_chat(self, provider):
        response = await provider.chat(
            [HumanMessage(content="Hi")], temperature=0.2, max_tokens=50
        )

        assert response.content == "Hello there"
        assert response.usage["total_tokens"] == 5
        assert response.model == "gpt-4o-mini"
        provider.llm.bind.assert_any_call(temperature=0.2)
        provider.llm.bind.assert_any_call(max_tokens=50)

    @pytest.mark.asyncio
    async def test_structured_output(self, provider):
        structured_llm = MagicMock()
        structured_llm.ainvoke = AsyncMock(return_value={"action": "create"})
        provider.llm.with_structured_output.return_value = structured_llm

        response = await provider.chat(
            [HumanMessage(content="create Ash")], json_schema={"name": "x", "schema": {}}
        )

        assert response.structured == {"action": "create"}
        provider.llm.with_structured_output.assert_called_once_with(
            {"name": "x", "schema": {}}, method="json_schema"
        )

    @pytest.mark.asyncio
    async def test_network_error_is_transient(self, provider):
        provider.llm.ainvoke.side_effect = Exception("Connection refused")

        with pytest.raises(TransientProviderError, match="OpenAI API error"):
            await provider.chat([HumanMessage(content="Hi")])

    @pytest.mark.asyncio
    async def test_bad_request_is_fatal(self, provider):
        provider.llm.ainvoke.side_effect = ValueError("invalid model")

        with pytest.raises(FatalProviderError):
            await provider.chat([HumanMessage(content="Hi")])

    @pytest.mark.asyncio
    async def test_health_check(self, provider):
        assert await provider.health_check() is True
        provider.llm.ainvoke.side_effect = Exception("down")
        assert await provider.health_check() is False
