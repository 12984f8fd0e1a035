"""Per-service OpenAPI definitions stored in the bucket.

Every service keeps exactly one definition at `<prefix>/<service>.yml`. The list of
services is never stored anywhere, it is read from the bucket listing on every run.
"""
import concurrent.futures
from pathlib import Path
from typing import Any, Dict, List, Union

import structlog
import yaml
from botocore.client import BaseClient

from apidocs import config, s3_utils
from apidocs.exceptions import DefinitionDecodeError

log = structlog.get_logger()


def service_name_to_key(service_name: str, prefix: str = config.DEFINITIONS_PREFIX) -> str:
    # service names are used verbatim, `/` or `.` in them break key_to_service_name
    return f"{prefix}/{service_name}{config.DEFINITION_SUFFIX}"


def key_to_service_name(key: str) -> str:
    """Return the part of `key` between the first `/` and the last `.`.

    Only meaningful for keys accepted by `is_definition_key`.
    """
    return key[key.find("/") + 1 : key.rfind(".")]


def is_definition_key(key: str, prefix: str = config.DEFINITIONS_PREFIX) -> bool:
    return key.startswith(f"{prefix}/") and key.endswith(config.DEFINITION_SUFFIX)


def discover_service_names(
    client: BaseClient, bucket: str, prefix: str = config.DEFINITIONS_PREFIX
) -> List[str]:
    """List services that have a definition in the bucket, in listing order."""
    service_names = []
    for obj in s3_utils.walk_s3(client, bucket, f"{prefix}/", delimiter="/"):
        key = obj["Key"]
        if not is_definition_key(key, prefix):
            log.debug("discover_service_names.skip", key=key)
            continue
        service_names.append(key_to_service_name(key))

    log.info("discover_service_names", bucket=bucket, services=service_names)
    return service_names


def parse_definition(content: Union[bytes, str], source: str = "<string>") -> Dict[str, Any]:
    """Parse a YAML OpenAPI definition into a dictionary."""
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DefinitionDecodeError(f"Definition {source} is not valid UTF-8: {e}")

    try:
        definition = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise DefinitionDecodeError(f"Definition {source} is not valid YAML: {e}")

    if not isinstance(definition, dict):
        raise DefinitionDecodeError(
            f"Definition {source} must be a mapping, got {type(definition).__name__}"
        )
    return definition


def fetch_definitions(
    client: BaseClient,
    bucket: str,
    service_names: List[str],
    prefix: str = config.DEFINITIONS_PREFIX,
) -> List[Dict[str, Any]]:
    """Download and parse definitions of all services concurrently.

    All requests are in flight at once. If any of them fails the whole batch fails and no
    partial result is returned. Results are in the same order as `service_names`.
    """
    if not service_names:
        return []

    keys = [service_name_to_key(service_name, prefix) for service_name in service_names]

    with concurrent.futures.ThreadPoolExecutor(max_workers=len(keys)) as executor:
        futures = [executor.submit(s3_utils.get_object_bytes, client, bucket, key) for key in keys]

        done, _ = concurrent.futures.wait(futures, return_when=concurrent.futures.FIRST_EXCEPTION)
        for future in futures:
            if future in done and future.exception() is not None:
                for pending in futures:
                    pending.cancel()
                raise future.exception()  # type: ignore

        contents = [future.result() for future in futures]

    definitions = [parse_definition(content, source=key) for key, content in zip(keys, contents)]

    log.info("fetch_definitions", bucket=bucket, count=len(definitions))
    return definitions


def upload_definition(
    client: BaseClient,
    bucket: str,
    service_name: str,
    definition_file: Path,
    prefix: str = config.DEFINITIONS_PREFIX,
) -> str:
    """Upload local definition file of a service, overwriting the stored one. Returns its key."""
    # read first, a missing local file must fail before anything is written
    content = Path(definition_file).read_bytes()
    key = service_name_to_key(service_name, prefix)
    s3_utils.put_object(client, bucket, key, content, content_type=config.DEFINITION_CONTENT_TYPE)
    return key
