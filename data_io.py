# === Data import with validation checklist, and CSV export ===

import csv
import io
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from config import MAX_FILE_SIZE_MB, MAX_ROWS
from data_utils import merge_history_and_forecast
from ts_core import DataPoint

logger = logging.getLogger(__name__)


class DataError(ValueError):
    """Raised for user-facing, recoverable data errors."""


# Shared date utilities
SUPPORTED_DATE_FORMATS: List[Tuple[str, str]] = [
    ("%Y-%m-%d", "YYYY-MM-DD"),
    ("%Y/%m/%d", "YYYY/MM/DD"),
    ("%d/%m/%Y", "DD/MM/YYYY"),
    ("%m/%d/%Y", "MM/DD/YYYY"),
    ("%d-%m-%Y", "DD-MM-YYYY"),
    ("%m-%d-%Y", "MM-DD-YYYY"),
    ("%d.%m.%Y", "DD.MM.YYYY"),
    ("%Y-%m", "YYYY-MM"),
    ("%m/%Y", "MM/YYYY"),
    ("%b %Y", "Mon YYYY"),
    ("%B %Y", "Month YYYY"),
]


def detect_datetime_format(sample: List[str], max_samples: int = 200) -> Optional[Tuple[str, str]]:
    """Return the first (format, description) that parses all non-empty samples without NaT."""
    vals: List[str] = [str(v).strip() for v in sample if str(v).strip()]
    if not vals:
        return None
    vals = vals[:max_samples]
    for fmt, description in SUPPORTED_DATE_FORMATS:
        parsed = pd.to_datetime(vals, format=fmt, errors="coerce")
        if parsed.notna().all():
            return fmt, description
    return None


def _format_file_size(size_bytes: int) -> str:
    size_mb = size_bytes / (1024 * 1024)
    return f"{size_bytes / 1024:.1f} KB" if size_mb < 1 else f"{size_mb:.1f} MB"


def _detect_encoding_and_sample(file_obj_or_path, sample_bytes: int = 4096):
    """Detect a reasonable text encoding and return (encoding, sample_text).
    Tries utf-8-sig, utf-8, then latin-1.
    """
    if hasattr(file_obj_or_path, "read"):
        current_pos = file_obj_or_path.tell()
        try:
            raw = file_obj_or_path.read(sample_bytes)
        finally:
            file_obj_or_path.seek(current_pos)
    else:
        with open(file_obj_or_path, "rb") as fb:
            raw = fb.read(sample_bytes)

    if isinstance(raw, str):
        return "utf-8", raw
    for enc in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            return enc, (raw or b"").decode(enc)
        except UnicodeDecodeError:
            continue
    return "utf-8", ""


def _infer_delimiter(sample_text: str) -> str:
    """Infer delimiter using csv.Sniffer with fallback to frequency counts."""
    try:
        return csv.Sniffer().sniff(sample_text, delimiters=[",", ";", "\t", "|"]).delimiter
    except csv.Error:
        delim_counts = {d: sample_text.count(d) for d in (",", ";", "\t", "|")}
        best, count = max(delim_counts.items(), key=lambda x: x[1])
        return best if count > 0 else ","


def _file_size(file_obj_or_path, is_uploaded_file: bool) -> int:
    if not is_uploaded_file:
        return os.path.getsize(file_obj_or_path)
    size_bytes = getattr(file_obj_or_path, "size", None)
    if size_bytes is None:
        current_pos = file_obj_or_path.tell()
        file_obj_or_path.seek(0, 2)
        size_bytes = file_obj_or_path.tell()
        file_obj_or_path.seek(current_pos)
    return size_bytes


def load_data_with_checklist(file_obj_or_path, progress_callback=None):
    """
    Load an uploaded CSV/Excel file (date column first, value column last).

    Returns (df, info). `info["checklist"]` holds (status, message) tuples with
    status "ok", "warning" or "error"; `info["error"]` is set when loading
    failed, in which case df is empty.
    """
    checklist = []
    info = {"error": None}

    def add_check(status, message):
        checklist.append((status, message))
        if progress_callback:
            progress_callback(checklist.copy())

    def early_return_error(error_msg):
        logger.warning("Import rejected: %s", error_msg)
        info["error"] = error_msg
        info["checklist"] = checklist
        return pd.DataFrame(), info

    if file_obj_or_path is None:
        add_check("error", "No file provided")
        return early_return_error("No file provided")

    is_uploaded_file = hasattr(file_obj_or_path, "read")
    if isinstance(file_obj_or_path, (str, Path)):
        file_path = str(file_obj_or_path)
    else:
        file_path = getattr(file_obj_or_path, "name", None)

    # Pre-loading validation
    if not is_uploaded_file and not os.path.exists(file_path):
        add_check("error", f"File not found: {file_path}")
        return early_return_error(f"File not found: {file_path}")
    if file_path:
        add_check("ok", f"{'File uploaded' if is_uploaded_file else 'File found'}: {Path(file_path).name}")

    try:
        size_bytes = _file_size(file_obj_or_path, is_uploaded_file)
    except OSError:
        add_check("warning", "Cannot determine file size")
    else:
        if size_bytes / (1024 * 1024) >= MAX_FILE_SIZE_MB:
            add_check("error", f"File too large: {_format_file_size(size_bytes)} (max {MAX_FILE_SIZE_MB}MB)")
            return early_return_error(f"File too large: {_format_file_size(size_bytes)} (max {MAX_FILE_SIZE_MB}MB)")
        add_check("ok", f"File size: {_format_file_size(size_bytes)}")

    ext = Path(file_path).suffix.lower() if file_path else ""
    if ext == ".csv":
        add_check("ok", "CSV format detected")
    elif ext in (".xlsx", ".xls"):
        add_check("ok", f"Excel format detected ({ext})")
    else:
        add_check("warning", f"Unexpected format: {ext or 'no extension'}")

    # Load data
    detected_encoding = detected_delimiter = None
    try:
        if ext in (".xlsx", ".xls"):
            df = pd.read_excel(file_obj_or_path)
        else:
            detected_encoding, sample_text = _detect_encoding_and_sample(file_obj_or_path)
            detected_delimiter = _infer_delimiter(sample_text or "")
            if is_uploaded_file:
                file_obj_or_path.seek(0)
            df = pd.read_csv(file_obj_or_path, sep=detected_delimiter, encoding=detected_encoding)
        add_check("ok", "Data loaded successfully")
    except (ValueError, OSError, UnicodeDecodeError, pd.errors.ParserError, ImportError) as load_error:
        add_check("error", f"Failed to load file: {load_error}")
        return early_return_error(f"Failed to load file: {load_error}")

    df.columns = [str(c).strip().strip("\"'") for c in df.columns]

    # Post-loading validation
    if len(df) == 0:
        add_check("error", "No data rows found")
        return early_return_error("Empty dataset")
    if len(df) > MAX_ROWS:
        add_check("error", f"Too many rows: {len(df)} (max {MAX_ROWS})")
        return early_return_error(f"Dataset exceeds {MAX_ROWS:,} rows limit")
    add_check("ok", f"{len(df)} rows loaded")

    if len(df.columns) < 2:
        add_check("error", "Only 1 column detected. Need a date column (first) and a value column (last)")
        return early_return_error("Dataset must have at least 2 columns: date column (first) and value column (last)")
    add_check("ok", f"{len(df.columns)} columns detected")

    if detected_encoding:
        add_check("ok", f"Encoding detected: {detected_encoding}")
    if detected_delimiter:
        add_check("ok", f"Delimiter detected: {({chr(9): 'TAB'}).get(detected_delimiter, detected_delimiter)}")

    date_col, value_col = df.columns[0], df.columns[-1]

    detected_date_format = None
    if pd.api.types.is_datetime64_any_dtype(df[date_col]):
        add_check("ok", "Date column already parsed")
    else:
        detected = detect_datetime_format(df[date_col].dropna().astype(str).tolist())
        if detected is None:
            add_check("error", "Could not detect a date format for the first column")
            return early_return_error("Date format could not be determined. Use YYYY-MM-DD, DD/MM/YYYY, MM/DD/YYYY or YYYY-MM")
        detected_date_format, description = detected
        add_check("ok", f"Date format detected: {description}")

    values = pd.to_numeric(df[value_col], errors="coerce")
    n_invalid = int(values.isna().sum())
    if n_invalid == len(df):
        add_check("error", f"No numeric values in column '{value_col}'")
        return early_return_error(f"Value column '{value_col}' has no numeric values")
    if n_invalid:
        add_check("warning", f"{n_invalid} rows without a numeric value will be skipped")

    info["checklist"] = checklist
    info.update({
        "n_rows": df.shape[0],
        "n_cols": df.shape[1],
        "header_names": df.columns.tolist(),
        "date_column": date_col,
        "value_column": value_col,
        "detected_date_format": detected_date_format,
        "delimiter_used": detected_delimiter,
        "encoding_used": detected_encoding,
        "n_invalid_values": n_invalid,
    })
    return df, info


def frame_to_raw_points(raw_df: pd.DataFrame, file_info: dict) -> List[Tuple[pd.Timestamp, float]]:
    """
    Convert a loaded dataframe into (date, value) pairs for normalization,
    using the first column as date and the last column as value.
    """
    if raw_df.empty or file_info.get("error") or raw_df.shape[1] < 2:
        raise DataError(file_info.get("error") or "No data to import")

    date_values = raw_df[raw_df.columns[0]]
    fmt = file_info.get("detected_date_format")
    if pd.api.types.is_datetime64_any_dtype(date_values):
        ds = date_values
    elif fmt:
        ds = pd.to_datetime(date_values.astype(str).str.strip(), format=fmt, errors="coerce")
    else:
        ds = pd.to_datetime(date_values, errors="coerce", format="mixed")
    ys = pd.to_numeric(raw_df[raw_df.columns[-1]], errors="coerce")
    return list(zip(ds, ys))


def export_csv(history: Sequence[DataPoint], forecast: Sequence[DataPoint]) -> str:
    """
    Serialize history followed by forecast as 'date,actual,forecast' CSV.
    One row per month; the column that does not apply to a row is left empty.
    """
    merged = merge_history_and_forecast(history, forecast)
    out = merged[["date", "actual", "forecast"]].copy()
    out["date"] = out["date"].dt.strftime("%Y-%m-%d")
    buf = io.StringIO()
    out.to_csv(buf, index=False, na_rep="", lineterminator="\n")
    return buf.getvalue()
