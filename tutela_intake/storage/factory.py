from pathlib import Path

from tutela_intake.config.settings import Settings
from tutela_intake.storage.base import BaseObjectStore
from tutela_intake.storage.local_adapter import LocalObjectStore
from tutela_intake.storage.s3_adapter import S3ObjectStore


class ObjectStoreFactory:
    """Creates the configured object store adapter."""

    BACKENDS = ("local", "s3")

    @classmethod
    def create(cls, settings: Settings) -> BaseObjectStore:
        backend = settings.storage_backend.lower()
        if backend == "local":
            return LocalObjectStore(
                root=Path(settings.storage_root),
                public_base_url=settings.storage_public_base_url,
            )
        if backend == "s3":
            return S3ObjectStore(
                region=settings.s3_region,
                endpoint_url=settings.s3_endpoint_url or None,
                public_base_url=settings.storage_public_base_url,
            )
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
