"""
SageMaker AutoML forecasting jobs.

Job creation and status go through the SageMaker API. Deployment, endpoint
status, inference and cleanup are simulated and return canned payloads.
`handle_forecast_action` is the single entry point used by the UI; it masks
SDK failures with the same canned payloads.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from botocore.exceptions import BotoCoreError, ClientError

from aws_clients import get_sagemaker_client
from config import DEFAULT_FORECAST_MONTHS, JOB_PREFIX, get_config
from s3_storage import get_presigned_upload_url, upload_dataset_to_s3
from ts_core import DataPoint, InvalidArgument, generate_forecast, require_positive_count

logger = logging.getLogger(__name__)

AWS_ERRORS = (BotoCoreError, ClientError)

MOCK_ACCOUNT_ID = "123456789012"
STATUS_COMPLETED = "Completed"
STATUS_IN_SERVICE = "InService"


def _job_name() -> str:
    return f"{JOB_PREFIX}{int(time.time() * 1000)}"


def create_forecasting_job(history: Sequence[DataPoint], target_column: str = "value",
                           client=None, s3_client=None) -> Dict:
    """Upload the history to S3 and start an AutoML forecasting job."""
    config = get_config()
    dataset_path = upload_dataset_to_s3(history, client=s3_client)
    job_name = _job_name()
    client = client or get_sagemaker_client()

    response = client.create_auto_ml_job(
        AutoMLJobName=job_name,
        ProblemType="Forecasting",
        AutoMLJobConfig={
            "CompletionCriteria": {
                "MaxCandidates": 10,
                "MaxRuntimePerTrainingJobInSeconds": 3600,
            },
        },
        InputDataConfig=[{
            "DataSource": {"S3DataSource": {"S3DataType": "S3Prefix", "S3Uri": dataset_path}},
            "TargetAttributeName": target_column,
        }],
        OutputDataConfig={"S3OutputPath": f"s3://{config.data_bucket}/output/"},
        RoleArn=config.sagemaker_role_arn,
    )
    logger.info("Created AutoML job %s", job_name)
    return {"jobName": job_name, "jobArn": response.get("AutoMLJobArn")}


def get_job_status(job_name: str, client=None) -> Dict:
    """Describe a job; the best candidate is included once it has completed."""
    client = client or get_sagemaker_client()
    response = client.describe_auto_ml_job(AutoMLJobName=job_name)

    best_candidate = None
    if response.get("AutoMLJobStatus") == STATUS_COMPLETED:
        candidates = client.list_candidates_for_auto_ml_job(AutoMLJobName=job_name).get("Candidates") or []
        best_candidate = candidates[0] if candidates else None

    return {
        "jobName": job_name,
        "status": response.get("AutoMLJobStatus"),
        "bestCandidate": best_candidate,
        "endTime": response.get("EndTime"),
        "failureReason": response.get("FailureReason"),
    }


def deploy_best_model(job_name: str) -> Dict[str, str]:
    return {
        "modelName": f"{job_name}-model",
        "endpointConfigName": f"{job_name}-config",
        "endpointName": f"{job_name}-endpoint",
    }


def get_endpoint_status(endpoint_name: str) -> Dict:
    now = datetime.now(timezone.utc)
    return {
        "endpointName": endpoint_name,
        "status": STATUS_IN_SERVICE,
        "creationTime": now,
        "lastModifiedTime": now,
    }


def get_forecast_from_endpoint(endpoint_name: str, history: Sequence[DataPoint], forecast_horizon: int,
                               rng: Optional[np.random.Generator] = None) -> List[DataPoint]:
    """Pseudo-random monthly demand between 1000 and 1500 after the last history month."""
    if not history:
        raise InvalidArgument("history must contain at least one data point")
    forecast_horizon = require_positive_count(forecast_horizon, "forecast_horizon")
    rng = rng or np.random.default_rng()
    last = pd.Timestamp(history[-1].date).to_period("M").to_timestamp()
    dates = pd.date_range(start=last, periods=forecast_horizon + 1, freq="MS")[1:]
    values = np.round(1000 + rng.random(len(dates)) * 500)
    logger.debug("Simulated %d forecast points from %s", len(dates), endpoint_name)
    return [DataPoint(date=d, forecast=v) for d, v in zip(dates, values)]


def cleanup_sagemaker_resources(endpoint_name: str, endpoint_config_name: str, model_name: str) -> Dict:
    logger.info("Cleaning up %s, %s, %s", endpoint_name, endpoint_config_name, model_name)
    return {"success": True, "message": "Resources cleaned up successfully"}


def _mock_job_status(job_name: str) -> Dict:
    return {
        "jobName": job_name,
        "status": STATUS_COMPLETED,
        "bestCandidate": {
            "CandidateName": "candidate-0",
            "FinalAutoMLJobObjectiveMetric": {"MetricName": "MAPE", "Value": 5.67},
        },
    }


def handle_forecast_action(action: str, data: Optional[Dict] = None) -> Tuple[Dict, int]:
    """
    Dispatch an AutoML panel action and return (payload, http_status).

    Actions: create_job, get_job_status, deploy_model, get_endpoint_status,
    get_forecast, cleanup_resources, get_upload_url. AWS errors are logged and
    replaced by canned payloads; unknown actions yield a 400.
    """
    data = data or {}

    if action == "create_job":
        try:
            return create_forecasting_job(data.get("historicalData") or []), 200
        except AWS_ERRORS as e:
            logger.error("Error creating job: %s", e)
            job_name = _job_name()
            return {
                "jobName": job_name,
                "jobArn": f"arn:aws:sagemaker:{get_config().region}:{MOCK_ACCOUNT_ID}:automl-job/{job_name}",
            }, 200

    if action == "get_job_status":
        try:
            return get_job_status(data.get("jobName")), 200
        except AWS_ERRORS as e:
            logger.error("Error getting job status: %s", e)
            return _mock_job_status(data.get("jobName")), 200

    if action == "deploy_model":
        return deploy_best_model(data.get("jobName")), 200

    if action == "get_endpoint_status":
        return get_endpoint_status(data.get("endpointName")), 200

    if action == "get_forecast":
        history = data.get("historicalData") or []
        horizon = data.get("forecastHorizon", DEFAULT_FORECAST_MONTHS)
        try:
            if data.get("endpointName"):
                forecast = get_forecast_from_endpoint(data["endpointName"], history, horizon)
            else:
                # No endpoint deployed yet: use the local scenario engine
                forecast = generate_forecast(history, horizon)
        except InvalidArgument as e:
            return {"error": "Failed to process your request", "details": str(e)}, 500
        return {"forecast": forecast}, 200

    if action == "cleanup_resources":
        return cleanup_sagemaker_resources(
            data.get("endpointName"), data.get("endpointConfigName"), data.get("modelName")
        ), 200

    if action == "get_upload_url":
        filename = data.get("filename", "upload.csv")
        try:
            return {"uploadUrl": get_presigned_upload_url(filename, data.get("contentType", "text/csv"))}, 200
        except AWS_ERRORS as e:
            logger.error("Error getting upload URL: %s", e)
            return {"uploadUrl": f"https://example.com/upload/{int(time.time() * 1000)}-{filename}"}, 200

    return {"error": "Invalid action"}, 400
