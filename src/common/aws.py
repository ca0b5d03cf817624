"""AWS helpers shared by the S3 storage backend."""

import logging
import os

import boto3

logger = logging.getLogger(__name__)


def get_s3_client():
    """Create an S3 client configured from environment variables.

    ``S3_ENDPOINT`` is optional and lets the client talk to S3-compatible
    object stores. Credentials fall back to the default boto3 chain.
    """
    return boto3.client(
        "s3",
        endpoint_url=os.environ.get("S3_ENDPOINT"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY"),
    )


def build_s3_key(prefix: str, hatch_name: str, filename: str) -> str:
    """Build the S3 key for a file inside a hatch."""
    prefix = prefix.strip("/")
    if prefix:
        return f"{prefix}/{hatch_name}/{filename}"
    return f"{hatch_name}/{filename}"


def put_s3_object(client, bucket: str, key: str, body: bytes, content_type: str) -> None:
    """Upload in-memory bytes to S3."""
    client.put_object(
        Bucket=bucket,
        Key=key,
        Body=body,
        ContentType=content_type,
    )
    logger.debug("Uploaded %d bytes to s3://%s/%s", len(body), bucket, key)


def get_s3_object(client, bucket: str, key: str) -> bytes:
    """Download an S3 object into memory."""
    response = client.get_object(Bucket=bucket, Key=key)
    return response["Body"].read()


def list_s3_keys(client, bucket: str, prefix: str) -> list[str]:
    """List every key under an S3 prefix."""
    keys = []
    paginator = client.get_paginator("list_objects_v2")

    for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
        for obj in page.get("Contents", []):
            keys.append(obj["Key"])

    return keys
