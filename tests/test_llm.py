"""Unit tests for llm.py module."""
import pytest
from unittest.mock import AsyncMock
from src.llm import runsheet_extraction_llm, strip_code_fences

pytestmark = pytest.mark.unit


class TestStripCodeFences:
    """Test the strip_code_fences function."""

    def test_plain_text_untouched(self):
        assert strip_code_fences('"Date","Run Num"\nA,1') == '"Date","Run Num"\nA,1'

    def test_csv_fence_removed(self):
        text = '```csv\n"Date","Run Num"\nA,1\n```'
        assert strip_code_fences(text) == '"Date","Run Num"\nA,1'

    def test_bare_fence_removed(self):
        text = '```\n"Date","Run Num"\nA,1```'
        assert strip_code_fences(text) == '"Date","Run Num"\nA,1'

    def test_surrounding_whitespace_trimmed(self):
        assert strip_code_fences('  \nA,1\n\n  ') == "A,1"

    def test_none_becomes_empty(self):
        assert strip_code_fences(None) == ""

    def test_inner_backticks_kept(self):
        """Only the outer fences are stripped."""
        assert strip_code_fences("A,```x```,1") == "A,```x```,1"


@pytest.mark.asyncio
class TestRunsheetExtractionLlm:
    """Test the runsheet_extraction_llm function."""

    async def test_returns_message_content(self, mock_openai_client, completion_factory):
        mock_openai_client.chat.completions.create = AsyncMock(return_value=completion_factory("A,1"))

        result = await runsheet_extraction_llm(
            prompt="Extract the runsheet",
            base64_pdf="JVBERi0=",
            mime_type="application/pdf",
            openai_client=mock_openai_client,
            model="gpt-4.1",
        )

        assert result == "A,1"

    async def test_request_combines_prompt_and_pdf(self, mock_openai_client):
        await runsheet_extraction_llm(
            prompt="Extract the runsheet",
            base64_pdf="JVBERi0=",
            mime_type="application/pdf",
            openai_client=mock_openai_client,
            model="gpt-4.1",
        )

        call_args = mock_openai_client.chat.completions.create.call_args
        assert call_args[1]["model"] == "gpt-4.1"
        content = call_args[1]["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "Extract the runsheet"}
        assert content[1]["type"] == "file"
        assert content[1]["file"]["file_data"] == "data:application/pdf;base64,JVBERi0="

    async def test_empty_content_returns_empty_string(self, mock_openai_client, completion_factory):
        mock_openai_client.chat.completions.create = AsyncMock(return_value=completion_factory(None))

        result = await runsheet_extraction_llm(
            prompt="p",
            base64_pdf="",
            mime_type="application/pdf",
            openai_client=mock_openai_client,
            model="gpt-4.1",
        )

        assert result == ""
