"""Pytest configuration and shared fixtures."""
import pytest
import pymupdf
from unittest.mock import MagicMock, AsyncMock
from openai import AsyncOpenAI

from src.config import ConverterSettings


RUNSHEET_HEADER = '"Date","Run Num","Pick Up Time","Customer","Customer ID","Pickup Address","Dropoff Address","Dropoff Time","Comment","Mileage"'


def build_pdf(page_count):
    """Build an in-memory PDF whose page i carries the text 'Page i+1'."""
    doc = pymupdf.open()
    for i in range(page_count):
        page = doc.new_page()
        page.insert_text((72, 72), f"Page {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data


def make_completion(text):
    """Shape a chat completion response the way the OpenAI SDK returns it."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message = MagicMock()
    response.choices[0].message.content = text
    return response


@pytest.fixture
def pdf_factory():
    """Return a callable building a PDF with the requested number of pages."""
    return build_pdf


@pytest.fixture
def sample_pdf_bytes():
    """A three-page PDF."""
    return build_pdf(3)


@pytest.fixture
def sample_pdf_path(tmp_path):
    """Write a two-page PDF to disk and return its path."""
    pdf_file = tmp_path / "runsheet.pdf"
    pdf_file.write_bytes(build_pdf(2))
    return str(pdf_file)


@pytest.fixture
def runsheet_header():
    return RUNSHEET_HEADER


@pytest.fixture
def mock_openai_client():
    """Create a mock AsyncOpenAI client."""
    client = MagicMock(spec=AsyncOpenAI)
    client.chat = MagicMock()
    client.chat.completions = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=make_completion(f"{RUNSHEET_HEADER}\n10/02/2025,101,08:00,Alice,A1,1 King St,2 Queen St,08:30,,5.2")
    )
    return client


@pytest.fixture
def settings():
    """Converter settings with no backoff delay."""
    return ConverterSettings(openai_api_key="test-api-key-123", retry_base_delay=0)


@pytest.fixture
def sample_fill_down_lines():
    """Header and two rows of one shared ride; the second row lacks pickup data."""
    return [
        "Date,Run Num,Pick Up Time,Customer,Customer ID,Pickup Address,Dropoff Address,Dropoff Time,Comment,Mileage",
        "2025-01-01,5,09:00,Alice,1,123 Main,456 Oak,09:30,,10",
        "2025-01-01,5,,Bob,2,,789 Elm,09:45,,10",
    ]


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Setup test environment variables."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-api-key-123")
    for var in ("RUNSHEET_MODEL", "RUNSHEET_CHUNK_SIZE", "RUNSHEET_MAX_RETRIES", "RUNSHEET_RETRY_BASE_DELAY"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def completion_factory():
    """Return a callable shaping a chat completion around the given text."""
    return make_completion
