"""
Plotting utilities for demand forecast visualizations.
"""

from typing import Optional, Sequence

from matplotlib.figure import Figure
import pandas as pd

from config import DEFAULT_FIGURE_SIZE, DEFAULT_PLOT_COLORS
from data_utils import merge_history_and_forecast, points_to_frame
from ts_core import AccuracyResult, DataPoint


def create_forecast_plot(history: Sequence[DataPoint], forecast: Sequence[DataPoint],
                         figsize=DEFAULT_FIGURE_SIZE, title: Optional[str] = None):
    """
    Plot historical actuals and the forecast on one axis.

    The forecast line starts from the last known actual so the two curves
    join without a gap; a dotted divider marks the first forecast month.
    """
    # Outside pyplot's figure manager; the caller owns the figure
    fig = Figure(figsize=figsize)
    ax = fig.subplots()

    hist_df = points_to_frame(history).dropna(subset=["actual"])
    fcst_df = points_to_frame(forecast).dropna(subset=["forecast"])

    if not hist_df.empty:
        ax.plot(
            hist_df["date"], hist_df["actual"],
            color=DEFAULT_PLOT_COLORS["actual"], linewidth=2.0, marker="o", markersize=3,
            label="Historical",
        )

    if not fcst_df.empty:
        if not hist_df.empty:
            connection_point = pd.DataFrame({
                "date": [hist_df["date"].iloc[-1]],
                "forecast": [hist_df["actual"].iloc[-1]],
            })
            fcst_plot = pd.concat([connection_point, fcst_df[["date", "forecast"]]], ignore_index=True)
        else:
            fcst_plot = fcst_df
        ax.plot(
            fcst_plot["date"], fcst_plot["forecast"],
            color=DEFAULT_PLOT_COLORS["forecast"], linewidth=2.0, linestyle="--", marker="o", markersize=3,
            label="Forecast",
        )
        ax.axvline(fcst_df["date"].iloc[0], linestyle=":", linewidth=1,
                   color=DEFAULT_PLOT_COLORS["divider"], alpha=0.7)

    # Styling
    if title:
        ax.set_title(title)
    ax.set_xlabel("Month")
    ax.set_ylabel("Demand")
    if not hist_df.empty or not fcst_df.empty:
        ax.legend(loc="upper left", fontsize=10, frameon=False)
    ax.grid(alpha=0.3)
    fig.autofmt_xdate()
    fig.tight_layout()

    return fig


def create_results_table(history: Sequence[DataPoint], forecast: Sequence[DataPoint]) -> pd.DataFrame:
    """Month-by-month table for the table view."""
    merged = merge_history_and_forecast(history, forecast)
    table = pd.DataFrame({
        "Date": merged["date"].dt.strftime("%Y-%m"),
        "Actual": merged["actual"].round(2),
        "Forecast": merged["forecast"].round(2),
        "Kind": merged["kind"].str.capitalize(),
    })
    return table


def create_accuracy_table(result: AccuracyResult) -> pd.DataFrame:
    """Single-row metrics table for a test run."""
    return pd.DataFrame([{
        "Test periods": result.periods,
        "MAPE (%)": round(result.mape, 2),
        "RMSE": round(result.rmse, 2),
        "Accuracy (%)": round(result.accuracy, 2),
    }])
