import logging
import os
import re

from src.errors import EmptyResultError

HEADER_PATTERN = re.compile(r'^"Date","Run Num"', re.IGNORECASE)

RUN_NUM_COLUMN = "Run Num"
PICKUP_TIME_COLUMN = "Pick Up Time"
PICKUP_ADDRESS_COLUMN = "Pickup Address"


def _unquote(value):
    """Trim whitespace and one surrounding double quote from a raw CSV field."""
    value = (value or "").strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


def merge_csv_fragments(fragments):
    """
    Stitch the CSV text returned for each chunk into one list of lines.

    The header of the first fragment is kept. Later fragments whose first line
    looks like the header have it removed; if the model left the header out,
    every line of the fragment is kept as data.

    Parameters:
        fragments (list[str]): CSV text per chunk, in page order

    Returns:
        list[str]: header line followed by all data lines

    Raises:
        EmptyResultError: if fewer than two lines (header + one row) remain
    """
    merged_lines = []
    for fragment in fragments:
        lines = [line for line in (fragment or "").splitlines() if line.strip()]
        if not lines:
            continue

        if not merged_lines:
            merged_lines.extend(lines)
        elif HEADER_PATTERN.match(lines[0]):
            merged_lines.extend(lines[1:])
        else:
            logging.info("Fragment without header line, keeping all %d line(s) as data.", len(lines))
            merged_lines.extend(lines)

    if len(merged_lines) < 2:
        logging.error(f"Merged CSV has {len(merged_lines)} line(s); expected a header and at least one row.")
        raise EmptyResultError()

    logging.info(f"Merged {len(fragments)} fragment(s) into {len(merged_lines) - 1} data row(s).")
    return merged_lines


def apply_fill_down(csv_lines):
    """
    Copy "Pick Up Time" and "Pickup Address" down within a shared ride.

    A row belongs to the same ride as the row before it when both carry the
    same non-empty "Run Num". If such a row is missing its pickup time or
    pickup address, both raw fields are taken from the previous row. Rows are
    split on plain commas, so quoted fields containing commas will misalign.

    Returns the corrected lines; the input is returned unchanged when the
    header lacks one of the required columns.
    """
    if len(csv_lines) <= 1:
        return csv_lines

    header = [_unquote(col) for col in csv_lines[0].split(",")]
    try:
        run_idx = header.index(RUN_NUM_COLUMN)
        time_idx = header.index(PICKUP_TIME_COLUMN)
        address_idx = header.index(PICKUP_ADDRESS_COLUMN)
    except ValueError:
        logging.warning("Could not find required columns for fill-down logic. Skipping.")
        return csv_lines

    required_fields = max(run_idx, time_idx, address_idx) + 1
    rows = [line.split(",") for line in csv_lines[1:]]
    filled = 0

    for i in range(1, len(rows)):
        prev_row, row = rows[i - 1], rows[i]
        if len(prev_row) < required_fields or len(row) < required_fields:
            continue

        run_number = _unquote(row[run_idx])
        if not run_number or run_number != _unquote(prev_row[run_idx]):
            continue

        if not _unquote(row[time_idx]) or not _unquote(row[address_idx]):
            row[time_idx] = prev_row[time_idx]
            row[address_idx] = prev_row[address_idx]
            filled += 1

    if filled:
        logging.info(f"Fill-down corrected {filled} row(s).")

    return [csv_lines[0]] + [",".join(row) for row in rows]


def csv_file_name(original_name=None, default="runsheet"):
    """Derive the CSV file name from the uploaded PDF name (``trip.pdf`` -> ``trip.csv``)."""
    stem = os.path.splitext(os.path.basename(original_name or ""))[0].strip()
    return f"{stem or default}.csv"


def write_csv_output(csv_text, csv_path):
    """Write the final CSV text to ``csv_path`` and return the path."""
    directory = os.path.dirname(csv_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(csv_path, "w", encoding="utf-8", newline="") as f:
        f.write(csv_text)
    logging.info(f"CSV file written to {csv_path}")
    return csv_path
