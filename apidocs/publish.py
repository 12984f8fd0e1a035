from pathlib import Path

import structlog
from botocore.client import BaseClient

from apidocs import config, s3_utils

log = structlog.get_logger()


def publish_docs(client: BaseClient, bucket: str, html_path: Path, key: str = config.INDEX_KEY) -> str:
    """Upload rendered docs to the bucket root so that hosting always serves the latest version.

    Returns the S3 URL of the published page.
    """
    content = Path(html_path).read_bytes()
    s3_utils.put_object(
        client,
        bucket,
        key,
        content,
        content_type=config.INDEX_CONTENT_TYPE,
        cache_control=config.INDEX_CACHE_CONTROL,
    )
    s3_url = f"s3://{bucket}/{key}"
    log.info("publish_docs", s3_url=s3_url)
    return s3_url
