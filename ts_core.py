from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Union
import numpy as np
import pandas as pd
from sklearn.metrics import mean_squared_error

from config import (
    BASE_DEMAND_LEVEL,
    DEFAULT_SCENARIO,
    HISTORICAL_SCENARIO,
    HISTORY_START_DATE,
    LEVEL_WINDOW,
    SEASONAL_PERIOD,
)

RandomState = Union[None, int, np.random.Generator]


class InvalidArgument(ValueError):
    """Raised for bad counts and empty or mismatched sequences."""


def _optional_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"Not a numeric value: {value!r}")
    return None if math.isnan(value) else value


@dataclass(frozen=True)
class DataPoint:
    """A single monthly sample carrying an actual value, a forecast, or both."""

    date: pd.Timestamp
    actual: Optional[float] = None
    forecast: Optional[float] = None

    def __post_init__(self):
        try:
            date = pd.Timestamp(self.date)
        except (TypeError, ValueError):
            raise InvalidArgument(f"Not a valid date: {self.date!r}")
        if pd.isna(date):
            raise InvalidArgument("Data point date is missing")
        object.__setattr__(self, "date", date)
        object.__setattr__(self, "actual", _optional_float(self.actual))
        object.__setattr__(self, "forecast", _optional_float(self.forecast))
        if self.actual is None and self.forecast is None:
            raise InvalidArgument(f"Data point for {date.strftime('%Y-%m-%d')} has neither actual nor forecast")

    @property
    def value(self) -> float:
        return self.actual if self.actual is not None else self.forecast


@dataclass(frozen=True)
class ScenarioParameters:
    """Weights for synthetic generation, as fractions (0.2 = 20%)."""

    seasonality: float = DEFAULT_SCENARIO[0]
    trend: float = DEFAULT_SCENARIO[1]
    noise: float = DEFAULT_SCENARIO[2]

    def __post_init__(self):
        for name in ("seasonality", "trend", "noise"):
            value = _optional_float(getattr(self, name))
            if value is None or not math.isfinite(value):
                raise InvalidArgument(f"{name} must be a finite number")
            object.__setattr__(self, name, value)
        if self.seasonality < 0 or self.noise < 0:
            raise InvalidArgument("seasonality and noise must be non-negative")

    @classmethod
    def from_percentages(cls, seasonality: float, trend: float, noise: float) -> "ScenarioParameters":
        """Build parameters from UI slider percentages (20 -> 0.2)."""
        return cls(seasonality / 100.0, trend / 100.0, noise / 100.0)

    @classmethod
    def coerce(cls, params) -> "ScenarioParameters":
        """Accept None, an instance, a mapping or a (seasonality, trend, noise) tuple."""
        if params is None:
            return cls()
        if isinstance(params, cls):
            return params
        if isinstance(params, Mapping):
            unknown = set(params) - {"seasonality", "trend", "noise"}
            if unknown:
                raise InvalidArgument(f"Unknown scenario parameters: {sorted(unknown)}")
            return cls(**params)
        try:
            return cls(*params)
        except TypeError:
            raise InvalidArgument(f"Cannot interpret scenario parameters: {params!r}")


@dataclass(frozen=True)
class AccuracyResult:
    mape: float
    rmse: float
    accuracy: float
    periods: int

    def to_dict(self) -> dict:
        return {
            "mape": self.mape,
            "rmse": self.rmse,
            "accuracy": self.accuracy,
            "periods": self.periods,
        }


def require_positive_count(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
        raise InvalidArgument(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def _month_start(ts) -> pd.Timestamp:
    return pd.Timestamp(ts).to_period("M").to_timestamp()


def _seasonal_component(months: np.ndarray, amplitude: float) -> np.ndarray:
    # Calendar-aligned so history and forecast share the same phase
    return amplitude * np.sin(2 * np.pi * (months - 1) / SEASONAL_PERIOD)


def _synthesize(level: float, months: np.ndarray, steps: np.ndarray,
                params: ScenarioParameters, rng: np.random.Generator) -> np.ndarray:
    perturbation = rng.uniform(-1.0, 1.0, size=len(steps))
    values = (
        level * (1.0 + _seasonal_component(months, params.seasonality) + params.trend * steps)
        + level * params.noise * perturbation
    )
    # Demand never goes negative
    return np.round(np.maximum(values, 0.0), 2)


def _as_points(points: Iterable[DataPoint], name: str) -> List[DataPoint]:
    if points is None:
        raise InvalidArgument(f"{name} must contain at least one data point")
    points = list(points)
    for p in points:
        if not isinstance(p, DataPoint):
            raise InvalidArgument(f"{name} must contain DataPoint values, got {type(p).__name__}")
    return points


def generate_historical(period_count: int, params=None, base_level: float = BASE_DEMAND_LEVEL,
                        start=HISTORY_START_DATE, random_state: RandomState = None) -> List[DataPoint]:
    """Synthesize `period_count` consecutive months of demand history.

    Each value is base_level * (1 + seasonal + trend * i) plus a uniform
    perturbation bounded by base_level * noise. Points carry `actual` only.
    Passing the same `random_state` seed reproduces the series exactly.
    """
    n = require_positive_count(period_count, "period_count")
    params = ScenarioParameters(*HISTORICAL_SCENARIO) if params is None else ScenarioParameters.coerce(params)

    dates = pd.date_range(start=_month_start(start), periods=n, freq="MS")
    values = _synthesize(
        float(base_level),
        dates.month.to_numpy(),
        np.arange(n, dtype=float),
        params,
        np.random.default_rng(random_state),
    )
    return [DataPoint(date=d, actual=v) for d, v in zip(dates, values)]


def generate_forecast(history: Sequence[DataPoint], horizon: int, params=None,
                      random_state: RandomState = None) -> List[DataPoint]:
    """Extrapolate `horizon` months after the end of `history`.

    The forecast level is the mean of the last LEVEL_WINDOW history values;
    seasonality, drift and noise are scaled by `params`. Points carry
    `forecast` only.
    """
    history = _as_points(history, "history")
    if not history:
        raise InvalidArgument("history must contain at least one data point")
    horizon = require_positive_count(horizon, "horizon")
    params = ScenarioParameters.coerce(params)

    level = float(np.mean([p.value for p in history[-LEVEL_WINDOW:]]))
    dates = pd.date_range(start=_month_start(history[-1].date), periods=horizon + 1, freq="MS")[1:]
    values = _synthesize(
        level,
        dates.month.to_numpy(),
        np.arange(1, horizon + 1, dtype=float),
        params,
        np.random.default_rng(random_state),
    )
    return [DataPoint(date=d, forecast=v) for d, v in zip(dates, values)]


def compute_accuracy(actual_values, forecast_values) -> AccuracyResult:
    """MAPE, RMSE and accuracy for two equal-length numeric sequences.

    Periods whose actual value is zero are left out of MAPE. When every
    period is left out, MAPE is 0 for a perfect match and 100 otherwise.
    Accuracy is 100 - MAPE clamped to [0, 100].
    """
    actual = np.asarray(list(actual_values), dtype=float)
    predicted = np.asarray(list(forecast_values), dtype=float)
    if actual.size == 0:
        raise InvalidArgument("Cannot compute accuracy on empty sequences")
    if actual.shape != predicted.shape:
        raise InvalidArgument(f"Length mismatch: {actual.size} actual vs {predicted.size} forecast values")
    if not (np.isfinite(actual).all() and np.isfinite(predicted).all()):
        raise InvalidArgument("Actual and forecast values must be finite")

    rmse = float(np.sqrt(mean_squared_error(actual, predicted)))

    # Not sklearn's mean_absolute_percentage_error: it floors zero actuals at epsilon instead of skipping them
    abs_err = np.abs(actual - predicted)
    denom = np.abs(actual)
    mask = denom > 0
    if mask.any():
        mape = float(np.mean(abs_err[mask] / denom[mask]) * 100.0)
    else:
        mape = 0.0 if not abs_err.any() else 100.0

    accuracy = min(100.0, max(0.0, 100.0 - mape))
    return AccuracyResult(mape=mape, rmse=rmse, accuracy=accuracy, periods=int(actual.size))


def compare_series(actual_points: Sequence[DataPoint], forecast_points: Sequence[DataPoint]) -> AccuracyResult:
    """Pair two point sequences month by month and score the forecast."""
    actual_points = _as_points(actual_points, "actual_points")
    forecast_points = _as_points(forecast_points, "forecast_points")
    if not actual_points or len(actual_points) != len(forecast_points):
        raise InvalidArgument(
            f"Cannot compare {len(actual_points)} actual points with {len(forecast_points)} forecast points"
        )

    actual_values, forecast_values = [], []
    for a, f in zip(actual_points, forecast_points):
        if _month_start(a.date) != _month_start(f.date):
            raise InvalidArgument(
                f"Dates do not line up: {a.date.strftime('%Y-%m')} vs {f.date.strftime('%Y-%m')}"
            )
        if a.actual is None:
            raise InvalidArgument(f"No actual value for {a.date.strftime('%Y-%m')}")
        actual_values.append(a.actual)
        forecast_values.append(f.forecast if f.forecast is not None else f.actual)
    return compute_accuracy(actual_values, forecast_values)


def evaluate(history: Sequence[DataPoint], forecast: Sequence[DataPoint], test_period_count: int,
             params=None, random_state: RandomState = None) -> AccuracyResult:
    """Backtest the scenario on the last `test_period_count` months of history.

    A fresh forecast of the same length is generated from the history that
    precedes the test window and compared with the held-out actuals.
    `forecast` is the forecast currently shown next to `history`; it must
    start after the last history month.
    """
    history = _as_points(history, "history")
    forecast = _as_points(forecast, "forecast")
    if not history:
        raise InvalidArgument("history must contain at least one data point")
    if not forecast:
        raise InvalidArgument("forecast must contain at least one data point")
    n = require_positive_count(test_period_count, "test_period_count")
    if n >= len(history):
        raise InvalidArgument(
            f"test_period_count ({n}) must be smaller than the history length ({len(history)})"
        )
    if _month_start(forecast[0].date) <= _month_start(history[-1].date):
        raise InvalidArgument("forecast must start after the last history month")

    training, holdout = history[:-n], history[-n:]
    backtest = generate_forecast(training, n, params, random_state=random_state)
    return compare_series(holdout, backtest)
