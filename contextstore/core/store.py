"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Contextstore, a product of Garudex Labs

Context store for Contextstore.

This module provides the ContextStore, a registry of named contexts persisted
as one JSON document per context under ``<root>/meta``. Mutations are
serialized across processes with an exclusive lock on ``<root>/.lock`` and
written with a temp-file-then-rename strategy, so readers never observe a
partially written record and never need to take the lock.
"""

import fcntl
import json
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

from contextstore.core.endpoints import ENDPOINT_TYPES, EndpointDescriptor
from contextstore.core.models import Context, ContextSummary
from contextstore.exceptions import (
    ContextAlreadyExistsError,
    ContextInUseError,
    ContextNotFoundError,
    InvalidContextNameError,
    InvalidEndpointOptionError,
    PersistenceError,
)
from contextstore.logging_config import get_logger, log_store_operation

logger = get_logger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.+-]*$")
RESERVED_NAMES = frozenset({"default"})

_RECORD_SUFFIX = ".json"
_TMP_PREFIX = ".tmp-"

ActiveContextProvider = Callable[[], Optional[str]]


def validate_context_name(name: str) -> None:
    """
    Check that ``name`` can be used as a context name.

    Names must be non-empty, start with a letter or digit and contain only
    letters, digits, ``_``, ``.``, ``+`` and ``-``, so they are safe to use as
    file names. ``default`` is reserved for the implicit default context.

    Names keep their case, but the store treats two names that differ only
    in case as the same name, so it behaves alike on case-insensitive
    filesystems.

    Raises:
        InvalidContextNameError: If the name is not acceptable
    """
    if not name:
        raise InvalidContextNameError("Context name must not be empty", name=name)
    if name in RESERVED_NAMES:
        raise InvalidContextNameError(
            f"'{name}' is a reserved context name", name=name
        )
    if not NAME_PATTERN.match(name):
        raise InvalidContextNameError(
            f"Context name '{name}' is invalid: names must match {NAME_PATTERN.pattern}",
            name=name,
        )


def _is_valid_name(name: str) -> bool:
    try:
        validate_context_name(name)
    except InvalidContextNameError:
        return False
    return True


def _check_endpoints(context: Context) -> None:
    """
    Check that every endpoint is stored under its own registered kind.

    Raises:
        InvalidEndpointOptionError: If a kind is unknown or holds a descriptor
            of another kind
    """
    for kind, descriptor in context.endpoints.items():
        descriptor_type = ENDPOINT_TYPES.get(kind)
        if descriptor_type is None:
            raise InvalidEndpointOptionError(
                f"Unknown endpoint kind '{kind}'", endpoint_kind=kind, name=context.name
            )
        if not isinstance(descriptor, descriptor_type):
            raise InvalidEndpointOptionError(
                f"Endpoint kind '{kind}' expects {descriptor_type.__name__}, "
                f"got {type(descriptor).__name__}",
                endpoint_kind=kind,
                name=context.name,
            )


class ContextListing:
    """
    Lazy view over the contexts in a store, ordered by name.

    Each iteration rescans the store, so the listing can be iterated any
    number of times and always reflects committed records only.
    """

    def __init__(self, store: "ContextStore"):
        self._store = store

    def __iter__(self) -> Iterator[ContextSummary]:
        return self._store._iter_summaries()


class ContextStore:
    """
    Manages context records with atomic JSON persistence.

    Provides methods to create, retrieve, list, update and remove contexts.
    The store is constructed once by the embedding application and handed to
    whatever needs it.
    """

    def __init__(
        self,
        root: Union[str, Path],
        active_context_provider: Optional[ActiveContextProvider] = None,
    ):
        """
        Initialize ContextStore.

        Args:
            root: Directory the store persists into (created on first write)
            active_context_provider: Optional callable returning the name of
                the currently active context, consulted by remove()
        """
        self.root = Path(root).expanduser()
        self.meta_dir = self.root / "meta"
        self.lock_path = self.root / ".lock"
        self._active_context_provider = active_context_provider

    def create(
        self,
        name: str,
        kind: str,
        description: str,
        descriptor: EndpointDescriptor,
    ) -> Context:
        """
        Create a context with a single endpoint.

        Args:
            name: Context name (must be unique)
            kind: Endpoint kind tag the descriptor is stored under
            description: Free text description
            descriptor: Endpoint descriptor for ``kind``

        Returns:
            Context: The newly created context

        Raises:
            InvalidContextNameError: If the name is empty or not filesystem-safe
            ContextAlreadyExistsError: If a context with this name exists
            PersistenceError: If writing the record fails
        """
        context = Context(
            name=name,
            type=kind,
            description=description or "",
            endpoints={kind: descriptor},
        )
        return self.add(context)

    def add(self, context: Context) -> Context:
        """
        Persist a fully formed context under its name.

        The existence check and the final rename happen under the store lock,
        so of two concurrent adds of the same name exactly one succeeds. A
        rejected add leaves the store exactly as it was.

        Raises:
            InvalidContextNameError: If the name is empty or not filesystem-safe
            InvalidEndpointOptionError: If an endpoint is not stored under its kind
            ContextAlreadyExistsError: If a context with this name exists
            PersistenceError: If writing the record fails
        """
        try:
            validate_context_name(context.name)
            _check_endpoints(context)
        except (InvalidContextNameError, InvalidEndpointOptionError) as e:
            log_store_operation(logger, "create", context.name, False, reason=e.kind)
            raise

        payload = self._encode(context)
        path = self._context_path(context.name)

        try:
            with self._locked():
                if self._name_taken(context.name):
                    log_store_operation(
                        logger, "create", context.name, False, reason="AlreadyExists"
                    )
                    raise ContextAlreadyExistsError(
                        f"Context '{context.name}' already exists", name=context.name
                    )
                self._write_atomic(path, payload)
        except OSError as e:
            logger.error(
                f"Failed to persist context '{context.name}' to {path}: {e}",
                exc_info=True,
            )
            raise PersistenceError(
                f"Failed to persist context '{context.name}' to {path}: {e}",
                name=context.name,
            ) from e

        log_store_operation(
            logger,
            "create",
            context.name,
            True,
            type=context.type,
            endpoints=sorted(context.endpoints),
        )
        return context

    def get(self, name: str) -> Context:
        """
        Retrieve a context by name.

        Raises:
            ContextNotFoundError: If no context has this name
            PersistenceError: If the record cannot be read or decoded
        """
        if not _is_valid_name(name):
            raise ContextNotFoundError(f"Context '{name}' not found", name=name)
        return self._read(self._context_path(name), name)

    def exists(self, name: str) -> bool:
        """Return True if a context with this name is stored."""
        return _is_valid_name(name) and self._context_path(name).exists()

    def list_contexts(self) -> ContextListing:
        """
        List all stored contexts.

        Returns:
            ContextListing: Restartable iterable of ContextSummary ordered by name
        """
        return ContextListing(self)

    def update(self, context: Context) -> Context:
        """
        Replace an existing context record.

        Concurrent updates of the same context are serialized by the store
        lock; the last writer wins.

        Raises:
            ContextNotFoundError: If no context has this name
            InvalidEndpointOptionError: If an endpoint is not stored under its kind
            PersistenceError: If writing the record fails
        """
        if not _is_valid_name(context.name):
            raise ContextNotFoundError(
                f"Context '{context.name}' not found", name=context.name
            )
        _check_endpoints(context)

        payload = self._encode(context)
        path = self._context_path(context.name)

        try:
            with self._locked():
                if not path.exists():
                    raise ContextNotFoundError(
                        f"Context '{context.name}' not found", name=context.name
                    )
                self._write_atomic(path, payload)
        except OSError as e:
            logger.error(f"Failed to update context '{context.name}': {e}", exc_info=True)
            raise PersistenceError(
                f"Failed to update context '{context.name}': {e}", name=context.name
            ) from e

        log_store_operation(logger, "update", context.name, True)
        return context

    def remove(self, name: str) -> None:
        """
        Remove a context.

        Raises:
            ContextNotFoundError: If no context has this name
            ContextInUseError: If the context is the currently active one
            PersistenceError: If deleting the record fails
        """
        if not _is_valid_name(name):
            raise ContextNotFoundError(f"Context '{name}' not found", name=name)

        path = self._context_path(name)
        try:
            with self._locked():
                if not path.exists():
                    log_store_operation(logger, "remove", name, False, reason="NotFound")
                    raise ContextNotFoundError(f"Context '{name}' not found", name=name)
                if self._is_active(name):
                    log_store_operation(logger, "remove", name, False, reason="InUse")
                    raise ContextInUseError(
                        f"Context '{name}' is the active context and cannot be removed",
                        name=name,
                    )
                path.unlink()
        except OSError as e:
            logger.error(f"Failed to remove context '{name}': {e}", exc_info=True)
            raise PersistenceError(
                f"Failed to remove context '{name}': {e}", name=name
            ) from e

        log_store_operation(logger, "remove", name, True)

    def _is_active(self, name: str) -> bool:
        if self._active_context_provider is None:
            return False
        return self._active_context_provider() == name

    def _context_path(self, name: str) -> Path:
        return self.meta_dir / f"{name}{_RECORD_SUFFIX}"

    def _name_taken(self, name: str) -> bool:
        """Return True if a record exists for ``name`` in any letter case."""
        if self._context_path(name).exists():
            return True
        wanted = f"{name}{_RECORD_SUFFIX}".casefold()
        return any(entry.casefold() == wanted for entry in os.listdir(self.meta_dir))

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the store-wide exclusive lock for the duration of a mutation."""
        self.meta_dir.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a") as f:
            # Blocks until every other writer has released the lock
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    @staticmethod
    def _encode(context: Context) -> str:
        return json.dumps(context.to_dict(), indent=2) + "\n"

    def _write_atomic(self, path: Path, payload: str) -> None:
        """
        Write ``payload`` to ``path`` atomically.

        Steps:
        1. Write to a temporary file in the same directory
        2. Flush to disk (fsync)
        3. Atomically rename over the target path
        """
        fd, tmp_name = tempfile.mkstemp(
            dir=self.meta_dir, prefix=_TMP_PREFIX, suffix=_RECORD_SUFFIX
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Persisted context record to {path}")

    def _read(self, path: Path, name: str) -> Context:
        try:
            data = json.loads(path.read_text())
        except FileNotFoundError:
            raise ContextNotFoundError(f"Context '{name}' not found", name=name)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse context record {path}: {e}", exc_info=True)
            raise PersistenceError(
                f"Failed to parse context record {path}: {e}", name=name
            ) from e
        except OSError as e:
            logger.error(f"Failed to read context record {path}: {e}", exc_info=True)
            raise PersistenceError(
                f"Failed to read context record {path}: {e}", name=name
            ) from e

        try:
            context = Context.from_dict(data)
        except (KeyError, TypeError, AttributeError) as e:
            logger.error(f"Malformed context record {path}: {e}", exc_info=True)
            raise PersistenceError(
                f"Malformed context record {path}: {e}", name=name
            ) from e

        logger.debug(f"Retrieved context: name={name}, type={context.type}")
        return context

    def _iter_summaries(self) -> Iterator[ContextSummary]:
        try:
            entries = os.listdir(self.meta_dir)
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceError(
                f"Failed to list contexts in {self.meta_dir}: {e}"
            ) from e

        names = sorted(
            entry[: -len(_RECORD_SUFFIX)]
            for entry in entries
            if entry.endswith(_RECORD_SUFFIX) and not entry.startswith(".")
        )
        for name in names:
            try:
                context = self._read(self._context_path(name), name)
            except ContextNotFoundError:
                # Removed after the directory scan
                continue
            yield context.summary()


def open_store(config) -> ContextStore:
    """
    Create a ContextStore from configuration.

    Args:
        config: ContextStoreConfig object

    Returns:
        ContextStore rooted at ``config.storage.root`` whose active context is
        ``config.current_context``
    """
    current = config.current_context or None
    return ContextStore(
        Path(config.storage.root).expanduser(),
        active_context_provider=lambda: current,
    )
