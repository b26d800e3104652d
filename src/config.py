import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from src.errors import ConfigurationError

DEFAULT_MODEL = "gpt-4.1"
CHUNK_SIZE = 20  # pages per extraction request
MAX_RETRIES = 3
RETRY_BASE_DELAY = 1.0  # seconds


class ConverterSettings(BaseModel):
    openai_api_key: str = Field(min_length=1)
    model: str = DEFAULT_MODEL
    chunk_size: int = Field(default=CHUNK_SIZE, gt=0)
    max_retries: int = Field(default=MAX_RETRIES, ge=1)
    retry_base_delay: float = Field(default=RETRY_BASE_DELAY, ge=0)


def load_settings(**overrides) -> ConverterSettings:
    """
    Build the converter settings from the environment (and an optional .env file).

    Keyword overrides (e.g. values coming from CLI flags) win over environment
    variables; overrides set to ``None`` are ignored.

    Raises:
        ConfigurationError: if OPENAI_API_KEY is missing or a value is invalid.
    """
    load_dotenv()

    values = {
        "openai_api_key": os.getenv("OPENAI_API_KEY"),
        "model": os.getenv("RUNSHEET_MODEL", DEFAULT_MODEL),
        "chunk_size": os.getenv("RUNSHEET_CHUNK_SIZE", CHUNK_SIZE),
        "max_retries": os.getenv("RUNSHEET_MAX_RETRIES", MAX_RETRIES),
        "retry_base_delay": os.getenv("RUNSHEET_RETRY_BASE_DELAY", RETRY_BASE_DELAY),
    }
    values.update({key: val for key, val in overrides.items() if val is not None})

    if not values["openai_api_key"]:
        raise ConfigurationError()

    try:
        return ConverterSettings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid converter configuration: {e}") from e
