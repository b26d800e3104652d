import argparse
import asyncio
import logging
import os
import sys
import time

from src.config import load_settings
from src.csv_processing import csv_file_name, write_csv_output
from src.errors import ConversionError
from src.pdf_extraction import convert_pdf_to_csv

# --------------------------------------------------
# Logging configuration
# --------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)


# --------------------------------------------------
# Helper functions
# --------------------------------------------------

def resolve_output_path(args: argparse.Namespace) -> str:
    """Return the CSV path for the run: ``<output_dir>/<name>.csv``."""
    if args.output_name:
        file_name = csv_file_name(args.output_name)
    else:
        file_name = csv_file_name(args.pdf_path)
    return os.path.join(args.output_dir, file_name)


async def process_pdf(args):
    """Read the PDF and run the conversion pipeline, logging progress messages."""
    if not args.pdf_path.lower().endswith(".pdf"):
        raise ValueError(f"Expected a .pdf file, got: {args.pdf_path}")

    settings = load_settings(model=args.model, chunk_size=args.chunk_size)

    logging.info("Opening PDF: %s", args.pdf_path)
    with open(args.pdf_path, "rb") as f:
        pdf_bytes = f.read()

    return await convert_pdf_to_csv(pdf_bytes, on_progress=logging.info, settings=settings)


# --------------------------------------------------
# CLI
# --------------------------------------------------

def build_arg_parser():
    parser = argparse.ArgumentParser(description="Runsheet PDF to CSV converter (CLI)")
    parser.add_argument("pdf_path", help="Path to the runsheet PDF to convert")
    parser.add_argument(
        "-o",
        "--output-name",
        default=None,
        help="Base name for the CSV file (defaults to the PDF file name)",
    )
    parser.add_argument(
        "--output-dir",
        default="output_files",
        help="Directory the CSV file is written to",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="OpenAI model used for extraction (defaults to RUNSHEET_MODEL or gpt-4.1)",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Number of pages sent per request (defaults to RUNSHEET_CHUNK_SIZE or 20)",
    )
    return parser


def main(argv=None):
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    start_time = time.time()

    try:
        csv_text = asyncio.run(process_pdf(args))
    except ConversionError as e:
        logging.error("Conversion failed: %s", e)
        sys.exit(1)
    except (OSError, ValueError) as e:
        logging.error("Processing failed: %s", e)
        sys.exit(1)

    output_path = write_csv_output(csv_text, resolve_output_path(args))
    row_count = max(len(csv_text.splitlines()) - 1, 0)
    logging.info("Conversion complete. %d row(s) written to %s", row_count, output_path)

    elapsed = time.time() - start_time
    logging.info("Total runtime: %.2f seconds", elapsed)
    return output_path


if __name__ == "__main__":
    main()
