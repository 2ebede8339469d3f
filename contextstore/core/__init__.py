"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Contextstore, a product of Garudex Labs

Core components for Contextstore.

This module contains the core primitives:
- Endpoint descriptors and their builders
- Context records
- The context store
- Context creation from descriptors or raw option maps
"""

from contextstore.core.builders import BUILDERS, build_endpoint
from contextstore.core.create import CreateOptions, create_context, create_from_options
from contextstore.core.endpoints import (
    ENDPOINT_TYPES,
    AciEndpoint,
    DockerEndpoint,
    ExampleEndpoint,
    KubernetesEndpoint,
    LocalEndpoint,
)
from contextstore.core.models import Context, ContextSummary
from contextstore.core.store import ContextStore, open_store, validate_context_name

__all__ = [
    "BUILDERS",
    "ENDPOINT_TYPES",
    "AciEndpoint",
    "Context",
    "ContextStore",
    "ContextSummary",
    "CreateOptions",
    "DockerEndpoint",
    "ExampleEndpoint",
    "KubernetesEndpoint",
    "LocalEndpoint",
    "build_endpoint",
    "create_context",
    "create_from_options",
    "open_store",
    "validate_context_name",
]
