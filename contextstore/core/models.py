"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Contextstore, a product of Garudex Labs

Context records persisted by the context store.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from contextstore.core.endpoints import EndpointDescriptor, descriptor_from_dict

METADATA_VERSION = 1


def _utcnow() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


@dataclass
class Context:
    """
    A named bundle of endpoint configuration.

    Attributes:
        name: Unique, filesystem-safe context name
        type: Endpoint kind the context was created for
        description: Free text, may be empty
        endpoints: Endpoint kind tag -> descriptor, at most one per kind
        default_stack_orchestrator: Opaque passthrough value, never validated
        metadata_version: Record format version
        created_at: Timestamp when the context was created (ISO 8601)
    """
    name: str
    type: str
    description: str = ""
    endpoints: Dict[str, EndpointDescriptor] = field(default_factory=dict)
    default_stack_orchestrator: Optional[str] = None
    metadata_version: int = METADATA_VERSION
    created_at: str = field(default_factory=_utcnow)

    def endpoint(self, kind: str) -> Optional[EndpointDescriptor]:
        """Return the descriptor for ``kind``, or None if the context has none."""
        return self.endpoints.get(kind)

    def copy_endpoint(self, kind: str) -> Optional[EndpointDescriptor]:
        """Return a deep copy of the ``kind`` descriptor, never the stored object."""
        descriptor = self.endpoints.get(kind)
        return copy.deepcopy(descriptor) if descriptor is not None else None

    def summary(self) -> "ContextSummary":
        return ContextSummary(
            name=self.name,
            description=self.description,
            type=self.type,
            endpoint_kinds=tuple(sorted(self.endpoints)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "metadata_version": self.metadata_version,
            "type": self.type,
            "description": self.description,
            "default_stack_orchestrator": self.default_stack_orchestrator,
            "created_at": self.created_at,
            "endpoints": {
                kind: descriptor.to_dict()
                for kind, descriptor in sorted(self.endpoints.items())
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Context":
        """
        Create Context from dictionary.

        Raises:
            KeyError: If a required key or an endpoint kind is unknown
            TypeError: If an endpoint carries unexpected fields
        """
        endpoints = {
            kind: descriptor_from_dict(kind, payload)
            for kind, payload in data.get("endpoints", {}).items()
        }
        return cls(
            name=data["name"],
            type=data["type"],
            description=data.get("description", ""),
            endpoints=endpoints,
            default_stack_orchestrator=data.get("default_stack_orchestrator"),
            metadata_version=data.get("metadata_version", METADATA_VERSION),
            created_at=data.get("created_at", ""),
        )


@dataclass(frozen=True)
class ContextSummary:
    """Listing entry for a context."""
    name: str
    description: str
    type: str
    endpoint_kinds: Tuple[str, ...]
