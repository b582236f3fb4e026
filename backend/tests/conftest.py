"""Pytest fixtures: settings per backend, test client, fake S3 client."""
import io
import os
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError
from httpx import ASGITransport, AsyncClient

# Required setting; must exist before anything calls get_settings()
os.environ.setdefault("PUBLIC_BASE_URL", "http://localhost:5000")

from object_storage.core.config import Settings, get_settings
from object_storage.main import create_app

PUBLIC_BASE_URL = "http://localhost:5000"


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client methods the backend uses."""

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.presign_calls: list[dict] = []

    def get_object(self, Bucket, Key):
        try:
            data = self.objects[(Bucket, Key)]
        except KeyError:
            raise ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "The specified key does not exist."}},
                "GetObject",
            ) from None
        return {"Body": io.BytesIO(data), "ContentLength": len(data)}

    def put_object(self, Bucket, Key, Body):
        self.objects[(Bucket, Key)] = bytes(Body)
        return {}

    def upload_file(self, Filename, Bucket, Key):
        with open(Filename, "rb") as f:
            self.objects[(Bucket, Key)] = f.read()

    def generate_presigned_url(self, ClientMethod, Params=None, **kwargs):
        self.presign_calls.append({"ClientMethod": ClientMethod, "Params": Params, **kwargs})
        expires = kwargs.get("ExpiresIn", 3600)
        return (
            f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}"
            f"?X-Amz-Expires={expires}&X-Amz-Signature=deadbeef"
        )


def make_settings(**overrides) -> Settings:
    values = {
        "public_base_url": PUBLIC_BASE_URL,
        "object_storage_implementation": "local",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def storage_dir(tmp_path):
    return tmp_path / "local-object-storage"


@pytest.fixture
def settings(storage_dir):
    return make_settings(local_object_storage_dir=str(storage_dir))


@pytest.fixture
def s3_settings(storage_dir):
    return make_settings(
        object_storage_implementation="s3",
        local_object_storage_dir=str(storage_dir),
        s3_profile_images_bucket="profile-images-bucket",
        s3_floorplans_bucket="floorplans-bucket",
    )


@pytest.fixture
def fake_s3():
    client = FakeS3Client()
    with patch("object_storage.services.storage.s3._get_client", return_value=client):
        yield client


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=PUBLIC_BASE_URL,
    ) as ac:
        yield ac
