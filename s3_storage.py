"""
Dataset storage on S3.
"""

import logging
import time
from typing import Dict, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from aws_clients import get_s3_client
from config import PRESIGNED_URL_EXPIRY_S, get_config
from ts_core import DataPoint

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def points_to_csv(points: Sequence[DataPoint]) -> str:
    """Training CSV for AutoML: 'date,value', missing actuals written as 0."""
    rows = ["date,value"]
    for p in points:
        rows.append(f"{p.date.strftime('%Y-%m-%d')},{p.actual if p.actual is not None else 0}")
    return "\n".join(rows)


def upload_dataset_to_s3(points: Sequence[DataPoint], filename: Optional[str] = None, client=None) -> str:
    """Upload the series as CSV and return its s3:// URI."""
    config = get_config()
    client = client or get_s3_client()
    key = filename or f"datasets/dataset-{_now_ms()}.csv"
    try:
        client.put_object(
            Bucket=config.data_bucket,
            Key=key,
            Body=points_to_csv(points).encode("utf-8"),
            ContentType="text/csv",
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("Error uploading dataset to S3: %s", e)
        raise
    return f"s3://{config.data_bucket}/{key}"


def get_presigned_upload_url(filename: str, content_type: str, client=None) -> str:
    config = get_config()
    client = client or get_s3_client()
    key = f"uploads/{_now_ms()}-{filename}"
    try:
        return client.generate_presigned_url(
            "put_object",
            Params={"Bucket": config.data_bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=PRESIGNED_URL_EXPIRY_S,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("Error generating presigned URL: %s", e)
        raise


def check_aws_connectivity(client=None) -> Dict:
    """List buckets to confirm credentials and region work."""
    config = get_config()
    logger.info("Testing AWS connectivity (region=%s, bucket=%s)", config.region, config.data_bucket)
    try:
        client = client or get_s3_client()
        response = client.list_buckets()
    except (BotoCoreError, ClientError) as e:
        logger.error("AWS connectivity test failed: %s", e)
        return {
            "success": False,
            "error": str(e),
            "errorType": type(e).__name__,
            "region": config.region,
            "dataBucket": config.data_bucket,
        }
    return {
        "success": True,
        "message": "AWS connection successful",
        "buckets": [b.get("Name") for b in response.get("Buckets", [])],
        "region": config.region,
        "dataBucket": config.data_bucket,
    }
