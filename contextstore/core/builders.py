"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Contextstore, a product of Garudex Labs

Endpoint builders for Contextstore.

Each builder turns a raw option map (as collected from ``--docker
host=...,ca=...`` style flags) into a validated endpoint descriptor. When a
source descriptor is supplied, the result starts as a copy of it and only the
options present in the map are overridden.

Builders are pure: they never touch the store or the filesystem. Resolving a
``from`` option to a source descriptor is the caller's job.
"""

import copy
from typing import Callable, Dict, Mapping, Optional, Type

from contextstore.core.endpoints import (
    ACI_ENDPOINT,
    DOCKER_ENDPOINT,
    EXAMPLE_ENDPOINT,
    KUBERNETES_ENDPOINT,
    LOCAL_ENDPOINT,
    AciEndpoint,
    DockerEndpoint,
    EndpointDescriptor,
    ExampleEndpoint,
    KubernetesEndpoint,
    LocalEndpoint,
)
from contextstore.exceptions import InvalidEndpointOptionError

FROM_OPTION = "from"

_TRUE_VALUES = frozenset({"1", "t", "true", "yes"})
_FALSE_VALUES = frozenset({"0", "f", "false", "no"})

# option key -> descriptor field
DOCKER_OPTIONS = {
    "host": "host",
    "ca": "ca",
    "cert": "cert",
    "key": "key",
    "skip-tls-verify": "skip_tls_verify",
}
KUBERNETES_OPTIONS = {
    "config-file": "config_file",
    "context-override": "context_override",
    "namespace-override": "namespace_override",
}
ACI_OPTIONS = {
    "subscription-id": "subscription_id",
    "resource-group": "resource_group",
    "location": "location",
}

_BOOLEAN_FIELDS = frozenset({"skip_tls_verify"})

Builder = Callable[[Mapping[str, str], Optional[EndpointDescriptor]], EndpointDescriptor]


def parse_bool(kind: str, option: str, value: str) -> Optional[bool]:
    """
    Parse a boolean option value.

    An empty value means "unset" and returns None.

    Raises:
        InvalidEndpointOptionError: If the value is not a recognized boolean
    """
    if value == "":
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise InvalidEndpointOptionError(
        f"Invalid boolean value '{value}' for {kind} option '{option}'",
        endpoint_kind=kind,
        option=option,
    )


def _check_keys(kind: str, options: Mapping[str, str], allowed: Mapping[str, str]) -> None:
    for option in options:
        if option != FROM_OPTION and option not in allowed:
            valid = ", ".join(sorted([FROM_OPTION, *allowed]))
            raise InvalidEndpointOptionError(
                f"Unrecognized {kind} endpoint option '{option}' (valid options: {valid})",
                endpoint_kind=kind,
                option=option,
            )


def _seed(kind: str, cls: Type, source: Optional[EndpointDescriptor]):
    if source is None:
        return cls()
    if not isinstance(source, cls):
        raise InvalidEndpointOptionError(
            f"Cannot copy a {type(source).__name__} into a {kind} endpoint",
            endpoint_kind=kind,
            option=FROM_OPTION,
        )
    return copy.deepcopy(source)


def _build_fields(
    kind: str,
    cls: Type,
    allowed: Mapping[str, str],
    options: Mapping[str, str],
    source: Optional[EndpointDescriptor],
) -> EndpointDescriptor:
    """Clone ``source`` (or the type default) and apply each present option."""
    _check_keys(kind, options, allowed)
    descriptor = _seed(kind, cls, source)
    for option, value in options.items():
        if option == FROM_OPTION:
            continue
        field_name = allowed[option]
        if field_name in _BOOLEAN_FIELDS:
            setattr(descriptor, field_name, parse_bool(kind, option, value))
        else:
            # An empty value clears whatever was copied from the source
            setattr(descriptor, field_name, value or None)
    return descriptor


def build_docker_endpoint(
    options: Mapping[str, str], source: Optional[EndpointDescriptor] = None
) -> DockerEndpoint:
    """
    Build a Docker engine endpoint.

    ``ca``, ``cert`` and ``key`` are stored as given; the files are not read
    or checked until something connects with them.

    Examples:
        >>> build_docker_endpoint({"host": "tcp://h1:2376", "ca": "/ca1"})
        DockerEndpoint(host='tcp://h1:2376', ca='/ca1', cert=None, key=None, skip_tls_verify=None)
    """
    return _build_fields(DOCKER_ENDPOINT, DockerEndpoint, DOCKER_OPTIONS, options, source)


def build_kubernetes_endpoint(
    options: Mapping[str, str], source: Optional[EndpointDescriptor] = None
) -> KubernetesEndpoint:
    """Build a Kubernetes endpoint."""
    return _build_fields(
        KUBERNETES_ENDPOINT, KubernetesEndpoint, KUBERNETES_OPTIONS, options, source
    )


def build_aci_endpoint(
    options: Mapping[str, str], source: Optional[EndpointDescriptor] = None
) -> AciEndpoint:
    """Build a cloud container instances endpoint."""
    return _build_fields(ACI_ENDPOINT, AciEndpoint, ACI_OPTIONS, options, source)


def build_local_endpoint(
    options: Mapping[str, str], source: Optional[EndpointDescriptor] = None
) -> LocalEndpoint:
    """Build a local engine endpoint. Only ``from`` is accepted."""
    return _build_fields(LOCAL_ENDPOINT, LocalEndpoint, {}, options, source)


def build_example_endpoint(
    options: Mapping[str, str], source: Optional[EndpointDescriptor] = None
) -> ExampleEndpoint:
    """Build an example endpoint; every option other than ``from`` lands in ``data``."""
    descriptor = _seed(EXAMPLE_ENDPOINT, ExampleEndpoint, source)
    for option, value in options.items():
        if option == FROM_OPTION:
            continue
        if value:
            descriptor.data[option] = value
        else:
            descriptor.data.pop(option, None)
    return descriptor


BUILDERS: Dict[str, Builder] = {
    DOCKER_ENDPOINT: build_docker_endpoint,
    KUBERNETES_ENDPOINT: build_kubernetes_endpoint,
    ACI_ENDPOINT: build_aci_endpoint,
    LOCAL_ENDPOINT: build_local_endpoint,
    EXAMPLE_ENDPOINT: build_example_endpoint,
}


def build_endpoint(
    kind: str,
    options: Mapping[str, str],
    source: Optional[EndpointDescriptor] = None,
) -> EndpointDescriptor:
    """
    Dispatch to the builder registered for ``kind``.

    Raises:
        InvalidEndpointOptionError: If ``kind`` is unknown or an option is invalid
    """
    builder = BUILDERS.get(kind)
    if builder is None:
        raise InvalidEndpointOptionError(
            f"Unknown endpoint kind '{kind}'", endpoint_kind=kind
        )
    return builder(options, source)
