from unittest.mock import MagicMock, patch

import pytest

from tutela_intake.storage.factory import ObjectStoreFactory
from tutela_intake.storage.local_adapter import LocalObjectStore
from tutela_intake.storage.s3_adapter import S3ObjectStore


def _settings(backend: str) -> MagicMock:
    return MagicMock(
        storage_backend=backend,
        storage_root="/tmp/tutelas",
        storage_public_base_url="",
        s3_region="us-east-1",
        s3_endpoint_url="",
    )


class TestObjectStoreFactory:
    def test_creates_local_store(self) -> None:
        assert isinstance(ObjectStoreFactory.create(_settings("local")), LocalObjectStore)

    def test_creates_s3_store(self) -> None:
        with patch("tutela_intake.storage.s3_adapter.boto3.client"):
            store = ObjectStoreFactory.create(_settings("S3"))
        assert isinstance(store, S3ObjectStore)

    def test_unknown_backend_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown storage backend 'ftp'"):
            ObjectStoreFactory.create(_settings("ftp"))
