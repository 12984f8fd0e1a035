import os
from pathlib import Path

# CI steps run from the checked out service repository, artifacts live next to it
BASE_DIR = Path(os.environ.get("BASE_DIR", Path.cwd()))

# Definition of the service running the step
DEFINITION_FILE = BASE_DIR / "openapi-definition.yml"

# Generated artifacts, regenerated on every run
MERGED_SPEC_FILE = BASE_DIR / "talentwunder-api.json"
RENDERED_DOC_FILE = BASE_DIR / "talentwunder-api.html"
