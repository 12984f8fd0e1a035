from typing import Any, Dict, Iterator, Optional

import boto3
import structlog
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from apidocs import config
from apidocs.exceptions import DownloadError, ListError, UploadError

log = structlog.get_logger()


def connect_s3(region_name: str = config.S3_REGION_NAME, s3_config: Optional[Config] = None) -> BaseClient:
    """Create an S3 client for the given region.

    Credentials are resolved by boto3's default chain (environment, shared config, instance role).
    """
    session = boto3.Session()
    return session.client("s3", region_name=region_name, config=s3_config)


def walk_s3(client: BaseClient, bucket: str, prefix: str, delimiter: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    """Yield object entries under `prefix`, following pagination.

    With a `delimiter` only the objects directly under the prefix are returned, keys in
    deeper "folders" are rolled up into common prefixes and skipped.
    """
    kwargs: Dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
    if delimiter:
        kwargs["Delimiter"] = delimiter

    try:
        paginator = client.get_paginator("list_objects_v2")  # type: ignore
        for page in paginator.paginate(**kwargs):
            yield from page.get("Contents", [])
    except (ClientError, BotoCoreError) as e:
        log.error("walk_s3.failed", bucket=bucket, prefix=prefix, error=str(e))
        raise ListError(e)


def get_object_bytes(client: BaseClient, bucket: str, key: str) -> bytes:
    """Download object and read its body stream to completion."""
    try:
        response = client.get_object(Bucket=bucket, Key=key)  # type: ignore
        body = response["Body"]
        try:
            return body.read()
        finally:
            body.close()
    except (ClientError, BotoCoreError) as e:
        log.error("get_object.failed", bucket=bucket, key=key, error=str(e))
        raise DownloadError(e)


def put_object(
    client: BaseClient,
    bucket: str,
    key: str,
    body: bytes,
    content_type: str,
    cache_control: Optional[str] = None,
    quiet: bool = False,
) -> None:
    extra_args = {"CacheControl": cache_control} if cache_control else {}
    try:
        client.put_object(  # type: ignore
            Bucket=bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
            **extra_args,
        )
    except (ClientError, BotoCoreError) as e:
        log.error("put_object.failed", bucket=bucket, key=key, error=str(e))
        raise UploadError(e)

    if not quiet:
        log.info("UPLOADED", s3_url=f"s3://{bucket}/{key}", size=len(body))
