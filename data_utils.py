"""
Common data processing utilities shared across the application.
"""

from typing import Iterable, List, Mapping, Sequence

import numpy as np
import pandas as pd

from ts_core import DataPoint, InvalidArgument


def _value_from_mapping(item: Mapping):
    for key in ("value", "actual", "forecast"):
        if item.get(key) is not None:
            return item[key]
    return None


def _raw_frame(raw_points) -> pd.DataFrame:
    """Collect supported raw inputs into a two-column (date, value) frame."""
    if isinstance(raw_points, pd.DataFrame):
        missing = {"date", "value"} - set(raw_points.columns)
        if missing:
            raise InvalidArgument(f"Missing columns: {sorted(missing)}")
        return raw_points[["date", "value"]].copy()

    rows = []
    for item in raw_points:
        if isinstance(item, DataPoint):
            rows.append((item.date, item.value))
        elif isinstance(item, Mapping):
            rows.append((item.get("date"), _value_from_mapping(item)))
        else:
            try:
                date, value = item
            except (TypeError, ValueError):
                raise InvalidArgument(f"Expected a (date, value) pair, got {item!r}")
            rows.append((date, value))
    return pd.DataFrame(rows, columns=["date", "value"])


def normalize(raw_points) -> List[DataPoint]:
    """
    Resample externally supplied date/value pairs to a strict monthly cadence.

    Dates are snapped to the first of their month and sorted. Several values
    in the same month are averaged; months missing inside the range are
    filled by linear interpolation. Rows whose date or value cannot be parsed
    are dropped. Needs at least two distinct months to infer the cadence.
    """
    if raw_points is None:
        raise InvalidArgument("No data points supplied")
    frame = _raw_frame(raw_points)

    frame["date"] = pd.to_datetime(frame["date"], errors="coerce", format="mixed")
    frame["value"] = pd.to_numeric(frame["value"], errors="coerce")
    frame = frame.dropna(subset=["date", "value"])
    frame = frame[np.isfinite(frame["value"].to_numpy(dtype=float))]
    if frame.empty:
        raise InvalidArgument("No valid date/value pairs found")

    frame["date"] = frame["date"].dt.to_period("M").dt.to_timestamp()
    monthly = frame.groupby("date", sort=True)["value"].mean()
    if len(monthly) < 2:
        raise InvalidArgument("At least two distinct months are needed to infer a monthly cadence")

    full_range = pd.date_range(monthly.index.min(), monthly.index.max(), freq="MS")
    filled = monthly.reindex(full_range).interpolate(method="linear")
    return [DataPoint(date=ds, actual=float(v)) for ds, v in filled.items()]


def points_to_frame(points: Iterable[DataPoint]) -> pd.DataFrame:
    """Tabulate data points as date/actual/forecast columns."""
    points = list(points)
    return pd.DataFrame({
        "date": pd.to_datetime([p.date for p in points]),
        "actual": pd.Series([p.actual for p in points], dtype=float),
        "forecast": pd.Series([p.forecast for p in points], dtype=float),
    })


def merge_history_and_forecast(history: Sequence[DataPoint], forecast: Sequence[DataPoint]) -> pd.DataFrame:
    """
    Stack history rows (actual only) above forecast rows (forecast only).
    Returns a frame with 'date', 'actual', 'forecast' and 'kind' columns.
    """
    hist_df = points_to_frame(history)
    hist_df["forecast"] = np.nan
    hist_df["kind"] = "historical"

    fcst_df = points_to_frame(forecast)
    fcst_df["actual"] = np.nan
    fcst_df["kind"] = "forecast"

    merged = pd.concat([hist_df, fcst_df], ignore_index=True)
    return merged[["date", "actual", "forecast", "kind"]]
