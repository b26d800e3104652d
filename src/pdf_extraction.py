import asyncio
import base64
import logging
import math
from enum import Enum
from typing import Callable

import pymupdf
from openai import AsyncOpenAI
from pydantic import BaseModel

from src.config import CHUNK_SIZE, ConverterSettings, load_settings
from src.csv_processing import apply_fill_down, merge_csv_fragments
from src.errors import (
    ConversionError,
    ExtractionFailedError,
    InvalidDocumentError,
    ServiceBusyError,
)
from src.llm import runsheet_extraction_llm, strip_code_fences
from src.prompts import RUNSHEET_PROMPT

PDF_MIME_TYPE = "application/pdf"
TRANSIENT_ERROR_MARKERS = ("internal", "500")


class PdfChunk(BaseModel):
    """A contiguous page range [start_page, end_page) saved as its own PDF."""

    start_page: int
    end_page: int
    total_pages: int
    data: bytes
    mime_type: str = PDF_MIME_TYPE

    @property
    def page_count(self) -> int:
        return self.end_page - self.start_page

    @property
    def label(self) -> str:
        return f"pages {self.start_page + 1}-{self.end_page} of {self.total_pages}"


class PipelineStage(str, Enum):
    IDLE = "idle"
    LOADING_DOCUMENT = "loading_document"
    EXTRACTING = "extracting"
    MERGING = "merging"
    CORRECTING = "correcting"
    DONE = "done"
    FAILED = "failed"


def _describe_exception(err: Exception) -> str:
    """
    Build a detailed string for exceptions, including HTTP body if present.
    Useful for surfacing OpenAI 4xx/5xx details in the logs.
    """
    parts = [f"{type(err).__name__}: {err}"]
    for attr in ["status_code", "code", "type", "param"]:
        val = getattr(err, attr, None)
        if val:
            parts.append(f"{attr}={val}")

    body = getattr(err, "body", None)
    if body is not None:
        if isinstance(body, (bytes, bytearray)):
            body = body.decode("utf-8", errors="ignore")
        parts.append(f"body={str(body)[:2000]}")

    return " | ".join(parts)


def is_transient_error(err: Exception) -> bool:
    """Treat errors whose message mentions 'internal' or '500' as retryable server errors."""
    message = str(err).lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


def split_pdf_into_chunks(pdf_bytes, chunk_size=CHUNK_SIZE):
    """
    Split a PDF into standalone sub-documents of at most ``chunk_size`` pages.

    Parameters:
        pdf_bytes (bytes): The whole PDF file
        chunk_size (int): Maximum number of pages per chunk

    Returns:
        list[PdfChunk]: ceil(page_count / chunk_size) chunks in page order

    Raises:
        InvalidDocumentError: if the bytes are not a readable PDF or it has no pages
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be a positive integer, got {chunk_size}")

    try:
        doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")
    except Exception as e:
        logging.error(f"Could not open PDF: {_describe_exception(e)}")
        raise InvalidDocumentError() from e

    try:
        page_count = doc.page_count
        if page_count == 0:
            logging.error("PDF has no pages.")
            raise InvalidDocumentError()

        logging.info(
            f"Splitting {page_count} page(s) into {math.ceil(page_count / chunk_size)} chunk(s) of up to {chunk_size} page(s)."
        )
        chunks = []
        for start in range(0, page_count, chunk_size):
            end = min(start + chunk_size, page_count)
            sub_doc = pymupdf.open()
            try:
                sub_doc.insert_pdf(doc, from_page=start, to_page=end - 1)
                chunk_bytes = sub_doc.tobytes()
            finally:
                sub_doc.close()
            chunks.append(
                PdfChunk(start_page=start, end_page=end, total_pages=page_count, data=chunk_bytes)
            )
        return chunks
    finally:
        doc.close()


async def extract_chunk_with_retry(
    chunk_bytes,
    mime_type,
    openai_client,
    model,
    prompt=RUNSHEET_PROMPT,
    max_retries=3,
    delay=1.0,
):
    """
    Extract CSV text for one chunk, retrying transient server errors with exponential backoff.

    Parameters:
        chunk_bytes (bytes): The chunk's PDF bytes
        mime_type (str): Mime type sent alongside the payload
        openai_client (AsyncOpenAI): Client used for the request
        model (str): Model name
        prompt (str): Extraction instructions
        max_retries (int): Total number of attempts
        delay (float): Base delay in seconds; attempt ``n`` (from 0) waits ``delay * 2**n`` before the next one

    Returns:
        str: The model output with code fences and outer whitespace removed

    Raises:
        ServiceBusyError: the last failure was transient
        ExtractionFailedError: the last failure was not transient
    """
    base64_pdf = base64.b64encode(chunk_bytes).decode("utf-8")
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            text = await runsheet_extraction_llm(
                prompt=prompt,
                base64_pdf=base64_pdf,
                mime_type=mime_type,
                openai_client=openai_client,
                model=model,
            )
            if attempt:
                logging.info(f"[Model {model}] Attempt {attempt + 1} of {max_retries} succeeded.")
            return strip_code_fences(text)
        except Exception as e:
            last_error = e
            logging.error(
                f"[Failed: Model {model}] Attempt {attempt + 1} of {max_retries}: {_describe_exception(e)}"
            )
            if not is_transient_error(e):
                break
            if attempt < max_retries - 1:
                wait = delay * (2 ** attempt)
                logging.warning(f"Transient error, retrying in {wait} second(s)...")
                await asyncio.sleep(wait)

    if last_error is not None and is_transient_error(last_error):
        logging.warning(f"Max retries with '{model}' exhausted.")
        raise ServiceBusyError() from None
    raise ExtractionFailedError() from None


def _log_progress(message):
    logging.info(message)


async def convert_pdf_to_csv(
    pdf_bytes,
    on_progress: Callable[[str], None] | None = None,
    settings: ConverterSettings | None = None,
    openai_client=None,
    mime_type=PDF_MIME_TYPE,
    prompt=RUNSHEET_PROMPT,
):
    """
    Convert a runsheet PDF into a single CSV string.

    Pages are sent to the model sequentially in chunks; the CSV fragments are
    merged in page order and the shared-ride fill-down is re-applied across
    chunk boundaries.

    Parameters:
        pdf_bytes (bytes): The uploaded PDF
        on_progress (callable): Receives a short status message at each stage
        settings (ConverterSettings): Defaults to ``load_settings()``
        openai_client (AsyncOpenAI): Defaults to a client built from ``settings``
        mime_type (str): Mime type forwarded with each chunk
        prompt (str): Extraction instructions

    Returns:
        str: Header and data rows joined with newlines

    Raises:
        ConversionError: any fatal error; no partial CSV is produced
    """
    settings = settings or load_settings()
    if openai_client is None:
        openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
    progress = on_progress or _log_progress

    stage = PipelineStage.IDLE

    def enter(next_stage, message=None):
        nonlocal stage
        logging.info(f"Pipeline stage: {stage.value} -> {next_stage.value}")
        stage = next_stage
        if message:
            progress(message)

    try:
        enter(PipelineStage.LOADING_DOCUMENT, "Loading PDF...")
        chunks = split_pdf_into_chunks(pdf_bytes, chunk_size=settings.chunk_size)

        enter(PipelineStage.EXTRACTING)
        fragments = []
        for chunk in chunks:
            progress(f"Processing {chunk.label}...")
            chunk_csv = await extract_chunk_with_retry(
                chunk.data,
                mime_type,
                openai_client=openai_client,
                model=settings.model,
                prompt=prompt,
                max_retries=settings.max_retries,
                delay=settings.retry_base_delay,
            )
            if chunk_csv:
                fragments.append(chunk_csv)
            else:
                logging.warning(f"Model returned no data for {chunk.label}.")

        enter(PipelineStage.MERGING, "Combining results...")
        merged_lines = merge_csv_fragments(fragments)

        enter(PipelineStage.CORRECTING, "Applying data corrections...")
        corrected_lines = apply_fill_down(merged_lines)

        enter(PipelineStage.DONE)
    except ConversionError as e:
        logging.error(f"Conversion failed during '{stage.value}' stage: {e}")
        enter(PipelineStage.FAILED)
        raise

    return "\n".join(corrected_lines)
