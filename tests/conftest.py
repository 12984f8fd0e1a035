import pytest
import yaml

from apidocs.config import Config

from .mocks import MockS3Client

BUCKET = "test-openapi-bucket"


def make_definition(title, paths, schemas=None):
    definition = {
        "openapi": "3.0.3",
        "info": {"title": title, "version": "1.0.0"},
        "paths": {
            path: {"get": {"operationId": f"get{title}{i}", "responses": {"200": {"description": "OK"}}}}
            for i, path in enumerate(paths)
        },
    }
    if schemas:
        definition["components"] = {"schemas": schemas}
    return definition


@pytest.fixture
def orgs_definition():
    return make_definition("Orgs", ["/organizations", "/organizations/{id}"], {"Organization": {"type": "object"}})


@pytest.fixture
def jobs_definition():
    return make_definition("Jobs", ["/jobs"], {"Job": {"type": "object"}})


@pytest.fixture
def search_definition():
    return make_definition("Search", ["/search"])


@pytest.fixture
def s3_client(orgs_definition, jobs_definition):
    return MockS3Client(
        {
            BUCKET: {
                "openapi-files/orgs.yml": yaml.safe_dump(orgs_definition).encode(),
                "openapi-files/jobs.yml": yaml.safe_dump(jobs_definition).encode(),
            }
        }
    )


@pytest.fixture
def config(tmp_path):
    return Config(
        bucket=BUCKET,
        definition_file=tmp_path / "openapi-definition.yml",
        merged_spec_file=tmp_path / "talentwunder-api.json",
        rendered_doc_file=tmp_path / "talentwunder-api.html",
        render_command=["redoc-cli", "build"],
    )
