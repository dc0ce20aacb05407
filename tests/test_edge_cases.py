import os, sys
import pandas as pd, numpy as np
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from ts_core import (
    DataPoint, InvalidArgument, ScenarioParameters,
    compare_series, evaluate, generate_forecast, generate_historical,
)

pytestmark = pytest.mark.edge_case


def test_single_month_history():
    """A one-point history still forecasts from its only value."""
    hist = generate_historical(1, random_state=1)
    fc = generate_forecast(hist, 3, {"seasonality": 0.0, "trend": 0.0, "noise": 0.0})
    assert [p.forecast for p in fc] == [hist[0].actual] * 3

def test_single_month_horizon():
    hist = generate_historical(24, random_state=1)
    fc = generate_forecast(hist, 1, random_state=1)
    assert len(fc) == 1
    assert fc[0].date == pd.Timestamp("2025-01-01")

def test_history_crossing_year_boundary():
    hist = generate_historical(3, start="2023-11-01", random_state=1)
    assert [p.date.strftime("%Y-%m") for p in hist] == ["2023-11", "2023-12", "2024-01"]
    fc = generate_forecast(hist, 2, random_state=1)
    assert [p.date.strftime("%Y-%m") for p in fc] == ["2024-02", "2024-03"]

def test_mid_month_history_dates_are_snapped():
    hist = [DataPoint("2024-01-15", actual=100), DataPoint("2024-02-20", actual=100)]
    fc = generate_forecast(hist, 1, random_state=1)
    assert fc[0].date == pd.Timestamp("2024-03-01")

def test_large_negative_trend_floors_at_zero():
    hist = generate_historical(6, random_state=1)
    fc = generate_forecast(hist, 24, {"seasonality": 0.0, "trend": -0.1, "noise": 0.0})
    values = [p.forecast for p in fc]
    assert min(values) == 0.0
    assert all(v >= 0 for v in values)

def test_history_of_zeros():
    hist = [DataPoint(d, actual=0.0) for d in pd.date_range("2024-01-01", periods=6, freq="MS")]
    fc = generate_forecast(hist, 3, random_state=1)
    assert [p.forecast for p in fc] == [0.0, 0.0, 0.0]

def test_numpy_integer_counts_are_accepted():
    assert len(generate_historical(np.int64(4), random_state=1)) == 4

def test_data_point_requires_a_value():
    with pytest.raises(InvalidArgument):
        DataPoint("2024-01-01")
    with pytest.raises(InvalidArgument):
        DataPoint("2024-01-01", actual=float("nan"))

def test_data_point_rejects_bad_date():
    with pytest.raises(InvalidArgument):
        DataPoint("not a date", actual=1)
    with pytest.raises(InvalidArgument):
        DataPoint(None, actual=1)

def test_data_point_rejects_non_numeric_value():
    with pytest.raises(InvalidArgument):
        DataPoint("2024-01-01", actual="lots")

def test_data_point_value_prefers_actual():
    assert DataPoint("2024-01-01", actual=5, forecast=7).value == 5.0
    assert DataPoint("2024-01-01", forecast=7).value == 7.0

def test_unknown_scenario_key():
    hist = generate_historical(3, random_state=1)
    with pytest.raises(InvalidArgument):
        generate_forecast(hist, 2, {"seasonality": 0.2, "growth": 0.1})

@pytest.mark.parametrize("params", [
    {"seasonality": -0.1},
    {"noise": -0.5},
    {"trend": float("inf")},
    {"seasonality": "high"},
])
def test_invalid_scenario_values(params):
    with pytest.raises(InvalidArgument):
        ScenarioParameters.coerce(params)

def test_scenario_tuple_and_percentages():
    assert ScenarioParameters.coerce((0.2, 0.05, 0.1)) == ScenarioParameters()
    assert ScenarioParameters.from_percentages(20, 5, 10) == ScenarioParameters(0.2, 0.05, 0.1)
    with pytest.raises(InvalidArgument):
        ScenarioParameters.coerce(42)

def test_negative_trend_is_allowed():
    assert ScenarioParameters(trend=-0.1).trend == -0.1

def test_history_with_non_points():
    with pytest.raises(InvalidArgument):
        generate_forecast([("2024-01-01", 100)], 2)
    with pytest.raises(InvalidArgument):
        generate_forecast(None, 2)

def test_compare_series_requires_actuals():
    only_forecast = [DataPoint("2024-01-01", forecast=1)]
    with pytest.raises(InvalidArgument):
        compare_series(only_forecast, only_forecast)

def test_compare_series_length_mismatch():
    a = [DataPoint("2024-01-01", actual=1), DataPoint("2024-02-01", actual=2)]
    with pytest.raises(InvalidArgument):
        compare_series(a, a[:1])
    with pytest.raises(InvalidArgument):
        compare_series([], [])

def test_evaluate_with_minimal_history():
    hist = generate_historical(2, random_state=1)
    fc = generate_forecast(hist, 1, random_state=1)
    assert evaluate(hist, fc, 1, random_state=1).periods == 1

def test_evaluate_rejects_overlapping_forecast():
    hist = generate_historical(12, random_state=1)
    overlapping = [DataPoint(hist[-1].date, forecast=1.0)]
    with pytest.raises(InvalidArgument):
        evaluate(hist, overlapping, 3)
