"""Result records and the object storage client interface."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Protocol

__all__ = [
    "DownloadResult",
    "UploadResult",
    "ObjectHeaders",
    "ObjectStoreError",
    "ObjectStore",
]


@dataclass
class DownloadResult:
    """Outcome of downloading one object."""

    action: str = ""
    container: str = ""
    content: BinaryIO | None = None
    object: str = ""
    path: str = ""
    pseudo_dir: bool = False
    success: bool = False


@dataclass
class UploadResult:
    """Outcome of uploading one object."""

    action: str = ""
    container: str = ""
    large_object: bool = False
    object: str = ""
    path: str = ""
    status: str = ""
    success: bool = False


@dataclass
class ObjectHeaders:
    """Headers and user metadata of a stored object."""

    content_length: int = 0
    content_type: str = ""
    etag: str = ""
    object_manifest: str = ""
    static_large_object: bool = False
    last_modified: datetime | None = None
    metadata: dict[str, str] = field(default_factory=dict)


class ObjectStoreError(Exception):
    """A request to the object store failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        headers: ObjectHeaders | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.headers = headers

    @property
    def not_found(self) -> bool:
        """True when the store answered 404 Not Found."""
        return self.status_code == 404


class ObjectStore(Protocol):
    """Operations on an object storage account.

    Failed requests raise ObjectStoreError.
    """

    def create_container(self, container: str) -> None:
        """Create ``container`` if it does not exist."""

    def list_containers(self, prefix: str, delimiter: str) -> Iterable[str]:
        """Yield the names of the account's containers."""

    def list_objects(self, container: str, prefix: str, delimiter: str) -> Iterable[str]:
        """Yield the names of the objects in ``container``."""

    def get_object(self, container: str, name: str) -> ObjectHeaders:
        """Return an object's headers and metadata without its body."""

    def download_object(
        self,
        container: str,
        name: str,
        multipart_manifest: str,
        if_none_match: str,
    ) -> tuple[ObjectHeaders, BinaryIO]:
        """Return an object's headers and a readable body.

        An empty ``multipart_manifest`` or ``if_none_match`` is not sent. When the
        request fails the raised ObjectStoreError carries any headers received.
        """

    def create_object(
        self, container: str, name: str, content: BinaryIO | bytes, **kwargs: object
    ) -> ObjectHeaders:
        """Store an object and return the response headers.

        Accepted keywords: ``content_length``, ``content_type``, ``metadata``,
        ``etag``, ``no_etag``, ``object_manifest`` and ``multipart_manifest``.
        """

    def delete_object(self, container: str, name: str) -> None:
        """Delete an object."""