import os, sys, io
import pandas as pd
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import data_io
from data_io import DataError, detect_datetime_format, export_csv, frame_to_raw_points, load_data_with_checklist
from data_utils import normalize
from ts_core import DataPoint, generate_forecast, generate_historical


class _Upload(io.BytesIO):
    """Mimics the object Streamlit's file_uploader returns."""

    def __init__(self, data: bytes, name: str):
        super().__init__(data)
        self.name = name
        self.size = len(data)


def _write(tmp_path, name, text, encoding="utf-8"):
    path = tmp_path / name
    path.write_bytes(text.encode(encoding))
    return path


def _statuses(info):
    return [status for status, _ in info["checklist"]]


@pytest.mark.parametrize("sample,expected", [
    (["2024-01-31", "2024-02-29"], "%Y-%m-%d"),
    (["2024/01/31"], "%Y/%m/%d"),
    (["31/01/2024", "29/02/2024"], "%d/%m/%Y"),
    (["01/31/2024", "02/29/2024"], "%m/%d/%Y"),
    (["31.01.2024"], "%d.%m.%Y"),
    (["2024-01", "2024-12"], "%Y-%m"),
    (["Jan 2024", "Feb 2024"], "%b %Y"),
])
def test_detect_datetime_format(sample, expected):
    assert detect_datetime_format(sample)[0] == expected

def test_detect_datetime_format_unknown():
    assert detect_datetime_format(["soon", "later"]) is None
    assert detect_datetime_format(["", "  "]) is None

def test_load_comma_csv(tmp_path):
    path = _write(tmp_path, "sales.csv", "date,sales\n2024-01-01,10\n2024-02-01,12.5\n2024-03-01,11\n")
    df, info = load_data_with_checklist(path)
    assert info["error"] is None
    assert df.shape == (3, 2)
    assert info["delimiter_used"] == ","
    assert info["detected_date_format"] == "%Y-%m-%d"
    assert info["date_column"] == "date" and info["value_column"] == "sales"
    assert "error" not in _statuses(info)

def test_load_semicolon_dayfirst_uses_first_and_last_columns(tmp_path):
    text = "day;store;units\n15/01/2024;A;10\n15/02/2024;A;20\n15/03/2024;A;30\n"
    path = _write(tmp_path, "units.csv", text)
    df, info = load_data_with_checklist(path)
    assert info["error"] is None
    assert info["delimiter_used"] == ";"
    assert info["detected_date_format"] == "%d/%m/%Y"
    assert info["value_column"] == "units"
    raw = frame_to_raw_points(df, info)
    assert [(d.strftime("%Y-%m-%d"), v) for d, v in raw] == [
        ("2024-01-15", 10), ("2024-02-15", 20), ("2024-03-15", 30),
    ]
    assert [p.date.strftime("%Y-%m") for p in normalize(raw)] == ["2024-01", "2024-02", "2024-03"]

def test_load_latin1_file(tmp_path):
    text = "fecha,año\n2024-01-01,5\n2024-02-01,6\n"
    path = _write(tmp_path, "latin.csv", text, encoding="latin-1")
    df, info = load_data_with_checklist(path)
    assert info["error"] is None
    assert info["encoding_used"] == "latin-1"
    assert info["header_names"] == ["fecha", "año"]

def test_load_uploaded_object_and_progress_callback():
    upload = _Upload(b"date,value\n2024-01-01,1\n2024-02-01,2\n", "upload.csv")
    seen = []
    df, info = load_data_with_checklist(upload, progress_callback=seen.append)
    assert info["error"] is None
    assert len(df) == 2
    assert seen and seen[-1] == info["checklist"]
    assert info["checklist"][0] == ("ok", "File uploaded: upload.csv")

def test_invalid_values_are_reported(tmp_path):
    path = _write(tmp_path, "partial.csv", "date,value\n2024-01-01,1\n2024-02-01,n/a\n2024-03-01,3\n")
    df, info = load_data_with_checklist(path)
    assert info["error"] is None
    assert info["n_invalid_values"] == 1
    assert "warning" in _statuses(info)

def test_no_file():
    df, info = load_data_with_checklist(None)
    assert df.empty
    assert info["error"] == "No file provided"

def test_missing_path(tmp_path):
    df, info = load_data_with_checklist(tmp_path / "nope.csv")
    assert df.empty
    assert info["error"].startswith("File not found")

def test_header_only_file(tmp_path):
    path = _write(tmp_path, "empty.csv", "date,value\n")
    df, info = load_data_with_checklist(path)
    assert info["error"] == "Empty dataset"

def test_zero_byte_file(tmp_path):
    path = _write(tmp_path, "blank.csv", "")
    df, info = load_data_with_checklist(path)
    assert df.empty
    assert info["error"].startswith("Failed to load file")

def test_single_column(tmp_path):
    path = _write(tmp_path, "one.csv", "value\n1\n2\n3\n")
    df, info = load_data_with_checklist(path)
    assert info["error"].startswith("Dataset must have at least 2 columns")

def test_too_many_rows(tmp_path, monkeypatch):
    monkeypatch.setattr(data_io, "MAX_ROWS", 2)
    path = _write(tmp_path, "big.csv", "date,value\n2024-01-01,1\n2024-02-01,2\n2024-03-01,3\n")
    df, info = load_data_with_checklist(path)
    assert info["error"] == "Dataset exceeds 2 rows limit"

def test_file_too_large(tmp_path, monkeypatch):
    monkeypatch.setattr(data_io, "MAX_FILE_SIZE_MB", 0)
    path = _write(tmp_path, "sales.csv", "date,value\n2024-01-01,1\n")
    df, info = load_data_with_checklist(path)
    assert info["error"].startswith("File too large")

def test_undetectable_dates(tmp_path):
    path = _write(tmp_path, "words.csv", "when,value\nsoon,1\nlater,2\n")
    df, info = load_data_with_checklist(path)
    assert info["error"].startswith("Date format could not be determined")

def test_no_numeric_values(tmp_path):
    path = _write(tmp_path, "text.csv", "date,label\n2024-01-01,a\n2024-02-01,b\n")
    df, info = load_data_with_checklist(path)
    assert info["error"] == "Value column 'label' has no numeric values"

def test_frame_to_raw_points_propagates_errors():
    with pytest.raises(DataError):
        frame_to_raw_points(pd.DataFrame(), {"error": "Empty dataset"})
    with pytest.raises(DataError):
        frame_to_raw_points(pd.DataFrame({"date": ["2024-01-01"]}), {"error": None})

def test_export_csv_layout():
    history = [DataPoint("2024-01-01", actual=100.5), DataPoint("2024-02-01", actual=98)]
    forecast = [DataPoint("2024-03-01", forecast=110.25)]
    assert export_csv(history, forecast) == (
        "date,actual,forecast\n"
        "2024-01-01,100.5,\n"
        "2024-02-01,98.0,\n"
        "2024-03-01,,110.25\n"
    )

def test_export_csv_row_count():
    hist = generate_historical(24, random_state=1)
    fc = generate_forecast(hist, 12, random_state=1)
    lines = export_csv(hist, fc).splitlines()
    assert lines[0] == "date,actual,forecast"
    assert len(lines) == 1 + 24 + 12
    assert lines[1].startswith("2023-01-01,") and lines[1].endswith(",")
    assert lines[-1].startswith("2025-12-01,,")

def test_export_csv_can_be_reimported(tmp_path):
    hist = generate_historical(6, random_state=1)
    fc = generate_forecast(hist, 3, random_state=1)
    path = tmp_path / "export.csv"
    path.write_text(export_csv(hist, fc))
    df, info = load_data_with_checklist(path)
    assert info["error"] is None
    assert info["value_column"] == "forecast"
    assert info["n_invalid_values"] == 6
