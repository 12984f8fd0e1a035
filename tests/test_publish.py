import pytest

from apidocs.exceptions import UploadError
from apidocs.publish import publish_docs

from .conftest import BUCKET
from .mocks import MockS3Client


def test_publish_docs(tmp_path):
    html_path = tmp_path / "talentwunder-api.html"
    html_path.write_text("<html><body>API</body></html>")
    client = MockS3Client()

    s3_url = publish_docs(client, BUCKET, html_path)

    assert s3_url == f"s3://{BUCKET}/index.html"
    assert client.objects[BUCKET]["index.html"] == b"<html><body>API</body></html>"
    assert client.metadata[BUCKET]["index.html"] == {
        "ContentType": "text/html",
        "CacheControl": "max-age=0,no-cache,no-store,must-revalidate",
    }


def test_publish_docs_missing_file(tmp_path):
    client = MockS3Client()

    with pytest.raises(FileNotFoundError):
        publish_docs(client, BUCKET, tmp_path / "missing.html")
    assert client.put_calls == []


def test_publish_docs_put_fails(tmp_path):
    html_path = tmp_path / "talentwunder-api.html"
    html_path.write_text("<html></html>")
    client = MockS3Client()
    client.fail_put = True

    with pytest.raises(UploadError):
        publish_docs(client, BUCKET, html_path)
