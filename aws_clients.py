"""
Process-wide boto3 clients, created on first use.
"""

import logging
import os
from functools import lru_cache

import boto3

from config import get_config

logger = logging.getLogger(__name__)


def _warn_if_no_credentials():
    if not os.environ.get("AWS_ACCESS_KEY_ID") or not os.environ.get("AWS_SECRET_ACCESS_KEY"):
        logger.warning("AWS credentials not found in environment variables")


def _make_client(service_name: str):
    region = get_config().region
    logger.info("Initializing %s client with region: %s", service_name, region)
    return boto3.client(service_name, region_name=region)


@lru_cache(maxsize=None)
def get_bedrock_client():
    _warn_if_no_credentials()
    return _make_client("bedrock-runtime")


@lru_cache(maxsize=None)
def get_sagemaker_client():
    return _make_client("sagemaker")


@lru_cache(maxsize=None)
def get_s3_client():
    logger.info("Using bucket: %s", get_config().data_bucket)
    return _make_client("s3")


def reset_clients():
    """Drop cached clients, e.g. after the region changes."""
    for getter in (get_bedrock_client, get_sagemaker_client, get_s3_client):
        getter.cache_clear()
