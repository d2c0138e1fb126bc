"""Resolve cloud resource names to their IDs."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

__all__ = [
    "ResourceKind",
    "Resource",
    "ResourceClient",
    "ResourceNotFoundError",
    "MultipleResourcesFoundError",
    "ids_from_name",
    "id_from_name",
]


class ResourceKind(Enum):
    """Kinds of resource that can be looked up by name."""

    IMAGE = "image"
    NETWORK = "network"
    PORT = "port"
    SUBNET = "subnet"
    SHARE = "share"
    SHARE_TYPE = "share type"
    SHARE_SNAPSHOT = "snapshot"
    SECURITY_GROUP = "security group"


# Kinds whose listing is not filtered by name on the server side.
_UNFILTERED_LISTING = frozenset({ResourceKind.SHARE_TYPE})
# Kinds whose listed resources are matched against the exact name locally.
_EXACT_MATCH = frozenset({ResourceKind.SHARE_TYPE, ResourceKind.SECURITY_GROUP})


@dataclass(frozen=True)
class Resource:
    """A listed resource: its ID and name."""

    id: str
    name: str


class ResourceClient(Protocol):
    """A service client able to list resources of a kind."""

    def list_resources(self, kind: ResourceKind, name: str | None) -> Iterable[Resource]:
        """List resources of ``kind``, filtered by ``name`` unless it is None."""


class ResourceNotFoundError(LookupError):
    """No resource of the requested kind has the requested name."""

    def __init__(self, name: str, resource_type: str) -> None:
        super().__init__(f"unable to find {resource_type} with name {name}")
        self.name = name
        self.resource_type = resource_type


class MultipleResourcesFoundError(LookupError):
    """More than one resource of the requested kind has the requested name."""

    def __init__(self, name: str, count: int, resource_type: str) -> None:
        super().__init__(f"found {count} {resource_type} resources matching {name}")
        self.name = name
        self.count = count
        self.resource_type = resource_type


def ids_from_name(client: ResourceClient, kind: ResourceKind, name: str) -> list[str]:
    """Return the IDs of every resource of ``kind`` named ``name``."""
    query = None if kind in _UNFILTERED_LISTING else name
    resources = client.list_resources(kind, query)
    if kind in _EXACT_MATCH:
        return [r.id for r in resources if r.name == name]
    return [r.id for r in resources]


def id_from_name(client: ResourceClient, kind: ResourceKind, name: str) -> str:
    """Return the ID of the single resource of ``kind`` named ``name``.

    Raises ResourceNotFoundError or MultipleResourcesFoundError unless exactly
    one resource matches.
    """
    ids = ids_from_name(client, kind, name)
    if not ids:
        raise ResourceNotFoundError(name, kind.value)
    if len(ids) > 1:
        raise MultipleResourcesFoundError(name, len(ids), kind.value)
    return ids[0]