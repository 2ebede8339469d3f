"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Contextstore, a product of Garudex Labs

Contextstore - durable registry of named endpoint contexts.

A context bundles the connection metadata (local engine, cloud container
instances, Kubernetes, Docker engine) a client tool needs to target a backend,
so the endpoint details are not re-specified on every invocation.
"""

from contextstore._version import __version__

__all__ = ["__version__"]
