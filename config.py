"""
Configuration constants for the retail demand forecasting demo.
"""

import os
from dataclasses import dataclass

# Synthetic series parameters
BASE_DEMAND_LEVEL = 1000.0
HISTORY_START_DATE = "2023-01-01"  # First month of generated history
SEASONAL_PERIOD = 12  # Months per seasonal cycle
LEVEL_WINDOW = 3  # Tail points averaged into the forecast level

# Fractions (0.2 = 20%): seasonality, trend, noise
HISTORICAL_SCENARIO = (0.20, 0.01, 0.05)
DEFAULT_SCENARIO = (0.20, 0.05, 0.10)

# UI defaults
DEFAULT_HISTORY_MONTHS = 24
DEFAULT_FORECAST_MONTHS = 12
DEFAULT_TEST_PERIODS = 6
SLIDER_RANGES = {
    "seasonality": (0, 50),
    "trend": (-10, 20),
    "noise": (0, 30),
    "test_periods": (1, 12),
}

# File processing parameters
MAX_FILE_SIZE_MB = 1
MAX_ROWS = 10000
SUPPORTED_EXTENSIONS = [".csv", ".xlsx", ".xls"]
EXPORT_FILE_NAME = "demand_forecast_data.csv"

# Plotting parameters
DEFAULT_FIGURE_SIZE = (12, 5)
DEFAULT_PLOT_COLORS = {
    "actual": "#222",
    "forecast": "orange",
    "divider": "#888",
}

# AWS integration
BEDROCK_MODEL_ID = "anthropic.claude-v2"
JOB_PREFIX = "retail-forecast-"
PRESIGNED_URL_EXPIRY_S = 3600


@dataclass(frozen=True)
class AppConfig:
    data_bucket: str
    sagemaker_role_arn: str
    region: str
    environment: str


def get_config() -> AppConfig:
    """Read deployment settings from the environment."""
    return AppConfig(
        data_bucket=os.environ.get("DATA_BUCKET", "retail-forecasting-data"),
        sagemaker_role_arn=os.environ.get("SAGEMAKER_ROLE_ARN", ""),
        region=os.environ.get("AWS_REGION", "us-east-1"),
        environment=os.environ.get("ENVIRONMENT", "development"),
    )
