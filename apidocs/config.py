#
#  config.py
#

"""
Environment variables and fixed settings of the docs step. The bucket is the only
required variable, everything else has a default that matches the CI setup.
"""
from dataclasses import dataclass, field
from os import environ as env
from pathlib import Path
from typing import List, Optional

import bugsnag
from dotenv import load_dotenv

from apidocs import paths
from apidocs.exceptions import ConfigError

ENV_FILE = Path(env.get("ENV_FILE", paths.BASE_DIR / ".env"))


def load_env():
    load_dotenv(ENV_FILE)


load_env()

# bucket holding both the per-service definitions and the published docs
BUCKET_ENV_VAR = "AWS_OPENAPI_BUCKET"

# fixed, not configurable from the environment
S3_REGION_NAME = "eu-central-1"
DEFINITIONS_PREFIX = "openapi-files"
DEFINITION_SUFFIX = ".yml"

# published doc lives at the bucket root, outside of DEFINITIONS_PREFIX
INDEX_KEY = "index.html"

DEFINITION_CONTENT_TYPE = "text/x-yaml"
INDEX_CONTENT_TYPE = "text/html"
INDEX_CACHE_CONTROL = "max-age=0,no-cache,no-store,must-revalidate"

# command used to render the merged spec, output and input paths are appended
DEFAULT_RENDER_COMMAND = ["npx", "--yes", "redoc-cli", "build"]
RENDER_COMMAND = env.get("APIDOCS_RENDER_COMMAND")

BUGSNAG_API_KEY = env.get("BUGSNAG_API_KEY")


def enable_bugsnag() -> None:
    if BUGSNAG_API_KEY:
        bugsnag.configure(
            api_key=BUGSNAG_API_KEY,
        )  # type: ignore


def _render_command_from_env() -> List[str]:
    if RENDER_COMMAND:
        return RENDER_COMMAND.split()
    return list(DEFAULT_RENDER_COMMAND)


@dataclass
class Config:
    """Settings of a single docs run."""

    bucket: str
    region_name: str = S3_REGION_NAME
    prefix: str = DEFINITIONS_PREFIX
    index_key: str = INDEX_KEY
    definition_file: Path = paths.DEFINITION_FILE
    merged_spec_file: Path = paths.MERGED_SPEC_FILE
    rendered_doc_file: Path = paths.RENDERED_DOC_FILE
    render_command: List[str] = field(default_factory=_render_command_from_env)

    @classmethod
    def from_env(cls, bucket: Optional[str] = None, **kwargs) -> "Config":
        """Build config from the environment, `bucket` takes precedence over AWS_OPENAPI_BUCKET."""
        bucket = bucket or env.get(BUCKET_ENV_VAR)
        if not bucket or not bucket.strip():
            raise ConfigError(f"Environment variable {BUCKET_ENV_VAR} is not set")
        # drop unset overrides so that dataclass defaults apply
        overrides = {k: v for k, v in kwargs.items() if v is not None}
        return cls(bucket=bucket.strip(), **overrides)
