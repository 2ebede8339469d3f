"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Contextstore, a product of Garudex Labs

Context creation for Contextstore.

Provides the entry points every "create context" command goes through:

- create_context: store a single, already built endpoint descriptor
- create_from_options: build one or more endpoints from raw option maps,
  optionally cloned from an existing context, and store them as one context
"""

import copy
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from contextstore.core.builders import FROM_OPTION, build_endpoint
from contextstore.core.endpoints import (
    DOCKER_ENDPOINT,
    KUBERNETES_ENDPOINT,
    EndpointDescriptor,
)
from contextstore.core.models import Context
from contextstore.core.store import ContextStore, validate_context_name
from contextstore.exceptions import ConflictingOptionsError, ContextNotFoundError
from contextstore.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CreateOptions:
    """
    Everything a "create context" invocation asked for.

    Built once per invocation and never mutated; the endpoint option maps are
    copied into read-only mappings.

    Attributes:
        name: Name of the context to create
        description: Description, or None to inherit it when cloning
        default_stack_orchestrator: Opaque passthrough value
        docker: Docker endpoint options (from|host|ca|cert|key|skip-tls-verify)
        kubernetes: Kubernetes endpoint options
            (from|config-file|context-override|namespace-override)
        from_context: Name of a context to clone
    """
    name: str
    description: Optional[str] = None
    default_stack_orchestrator: Optional[str] = None
    docker: Optional[Mapping[str, str]] = None
    kubernetes: Optional[Mapping[str, str]] = None
    from_context: Optional[str] = None

    def __post_init__(self):
        for attr in ("docker", "kubernetes"):
            value = getattr(self, attr)
            if value is not None:
                object.__setattr__(self, attr, MappingProxyType(dict(value)))

    def endpoint_options(self) -> Dict[str, Mapping[str, str]]:
        """Return the supplied option maps keyed by endpoint kind."""
        supplied = {
            DOCKER_ENDPOINT: self.docker,
            KUBERNETES_ENDPOINT: self.kubernetes,
        }
        return {kind: opts for kind, opts in supplied.items() if opts is not None}


def create_context(
    store: ContextStore,
    name: str,
    kind: str,
    description: str,
    payload: Any,
) -> Context:
    """
    Create a context holding one endpoint descriptor.

    Args:
        store: Context store to persist into
        name: Context name (must be unique)
        kind: Endpoint kind tag (local, example, aci, kubernetes, docker)
        description: Free text description
        payload: Descriptor instance matching ``kind``

    Returns:
        Context: The newly created context

    Raises:
        InvalidEndpointOptionError: If kind is unknown or payload does not match it
        InvalidContextNameError: If the name is not acceptable
        ContextAlreadyExistsError: If the name is already taken
        PersistenceError: If writing the record fails
    """
    # The store owns its records; never keep a reference to the caller's object
    return store.create(name, kind, description, copy.deepcopy(payload))


class _SourceResolver:
    """Looks up ``from`` source contexts, once per name."""

    def __init__(self, store: ContextStore):
        self._store = store
        self._cache: Dict[str, Context] = {}

    def get(self, name: str) -> Context:
        if name not in self._cache:
            try:
                self._cache[name] = self._store.get(name)
            except ContextNotFoundError as e:
                raise ContextNotFoundError(
                    f"Source context '{name}' not found", name=name
                ) from e
        return self._cache[name]

    def endpoint(self, name: str, kind: str) -> Optional[EndpointDescriptor]:
        source = self.get(name)
        descriptor = source.copy_endpoint(kind)
        if descriptor is None:
            logger.debug(
                f"Source context '{name}' has no {kind} endpoint, starting from defaults"
            )
        return descriptor


def create_from_options(store: ContextStore, options: CreateOptions) -> Context:
    """
    Build and store a context from raw endpoint option maps.

    Rules:
    - An endpoint map's own ``from`` must agree with ``from_context``.
    - With ``from_context`` every endpoint of the source is copied, and each
      supplied map overrides the matching kind field by field.
    - Without ``from_context`` each map is built on its own, seeded from its
      own ``from`` source when present.
    - With neither maps nor ``from_context`` a default docker endpoint is used.

    All endpoints are built before anything is written, so a failure in any
    one of them leaves the store untouched.

    Raises:
        InvalidContextNameError: If the name is not acceptable
        ConflictingOptionsError: If endpoint ``from`` and ``from_context`` disagree
        ContextNotFoundError: If a source context does not exist
        InvalidEndpointOptionError: If an option key or value is invalid
        ContextAlreadyExistsError: If the name is already taken
        PersistenceError: If writing the record fails
    """
    validate_context_name(options.name)

    endpoint_options = options.endpoint_options()
    for kind, opts in endpoint_options.items():
        own_source = opts.get(FROM_OPTION)
        if own_source and options.from_context and own_source != options.from_context:
            raise ConflictingOptionsError(
                f"{kind} endpoint 'from={own_source}' conflicts with "
                f"'from={options.from_context}'",
                options=("from", f"{kind}.from"),
                name=options.name,
            )

    sources = _SourceResolver(store)
    endpoints: Dict[str, EndpointDescriptor] = {}
    context_type = None
    description = options.description
    orchestrator = options.default_stack_orchestrator

    if options.from_context:
        source = sources.get(options.from_context)
        for kind in source.endpoints:
            endpoints[kind] = source.copy_endpoint(kind)
        context_type = source.type
        if description is None:
            description = source.description
        if orchestrator is None:
            orchestrator = source.default_stack_orchestrator
    elif not endpoint_options:
        endpoint_options = {DOCKER_ENDPOINT: {}}

    for kind, opts in endpoint_options.items():
        source_name = opts.get(FROM_OPTION) or options.from_context
        seed = sources.endpoint(source_name, kind) if source_name else None
        endpoints[kind] = build_endpoint(kind, opts, seed)

    if context_type is None:
        context_type = DOCKER_ENDPOINT if DOCKER_ENDPOINT in endpoints else KUBERNETES_ENDPOINT

    context = Context(
        name=options.name,
        type=context_type,
        description=description or "",
        endpoints=endpoints,
        default_stack_orchestrator=orchestrator,
    )
    return store.add(context)
