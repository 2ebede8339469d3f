"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Contextstore, a product of Garudex Labs

Endpoint descriptors for Contextstore.

An endpoint descriptor is the typed payload describing how to reach one kind
of backend from a context. The set of kinds is closed; each kind tag maps to
exactly one descriptor class through ENDPOINT_TYPES.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Type, Union

LOCAL_ENDPOINT = "local"
EXAMPLE_ENDPOINT = "example"
ACI_ENDPOINT = "aci"
KUBERNETES_ENDPOINT = "kubernetes"
DOCKER_ENDPOINT = "docker"


class _Descriptor:
    """Serialization shared by every descriptor variant."""

    kind = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization, dropping unset fields."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Create descriptor from dictionary."""
        return cls(**data)


@dataclass
class LocalEndpoint(_Descriptor):
    """Implicit localhost engine; carries no connection fields."""

    kind = LOCAL_ENDPOINT


@dataclass
class ExampleEndpoint(_Descriptor):
    """Fixture endpoint returning fixed output, used to exercise the store."""

    kind = EXAMPLE_ENDPOINT

    data: Dict[str, str] = field(default_factory=dict)


@dataclass
class AciEndpoint(_Descriptor):
    """
    Cloud container instances endpoint.

    Attributes:
        subscription_id: Cloud subscription identifier
        resource_group: Resource group containers are created in
        location: Region for new container groups
    """

    kind = ACI_ENDPOINT

    subscription_id: Optional[str] = None
    resource_group: Optional[str] = None
    location: Optional[str] = None


@dataclass
class KubernetesEndpoint(_Descriptor):
    """
    Kubernetes endpoint.

    Attributes:
        config_file: Path to a kubeconfig file
        context_override: Context to use instead of the kubeconfig's current one
        namespace_override: Namespace to use instead of the context's default
    """

    kind = KUBERNETES_ENDPOINT

    config_file: Optional[str] = None
    context_override: Optional[str] = None
    namespace_override: Optional[str] = None


@dataclass
class DockerEndpoint(_Descriptor):
    """
    Docker engine endpoint.

    TLS material is referenced by path only. The files are opened by whoever
    connects, never by the store.

    Attributes:
        host: Engine URL, e.g. tcp://myserver:2376
        ca: Path to the CA certificate to trust
        cert: Path to the client TLS certificate
        key: Path to the client TLS key
        skip_tls_verify: None when unset (treated as False by consumers)
    """

    kind = DOCKER_ENDPOINT

    host: Optional[str] = None
    ca: Optional[str] = None
    cert: Optional[str] = None
    key: Optional[str] = None
    skip_tls_verify: Optional[bool] = None


EndpointDescriptor = Union[
    LocalEndpoint, ExampleEndpoint, AciEndpoint, KubernetesEndpoint, DockerEndpoint
]

ENDPOINT_TYPES: Dict[str, Type[_Descriptor]] = {
    LOCAL_ENDPOINT: LocalEndpoint,
    EXAMPLE_ENDPOINT: ExampleEndpoint,
    ACI_ENDPOINT: AciEndpoint,
    KUBERNETES_ENDPOINT: KubernetesEndpoint,
    DOCKER_ENDPOINT: DockerEndpoint,
}


def descriptor_from_dict(kind: str, data: Dict[str, Any]) -> EndpointDescriptor:
    """
    Rebuild a descriptor from its serialized form.

    Raises:
        KeyError: If kind is not a registered endpoint kind
    """
    return ENDPOINT_TYPES[kind].from_dict(data)
