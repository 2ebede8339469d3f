"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Contextstore, a product of Garudex Labs

Unit tests for the context store.
"""

import json
import multiprocessing
import os
import tempfile
from pathlib import Path

import pytest
from hypothesis import given, strategies as st

from contextstore.config.settings import ContextStoreConfig, StorageConfig
from contextstore.core.endpoints import (
    AciEndpoint,
    DockerEndpoint,
    ExampleEndpoint,
    KubernetesEndpoint,
    LocalEndpoint,
)
from contextstore.core.models import Context
from contextstore.core.store import ContextStore, open_store, validate_context_name
from contextstore.exceptions import (
    ContextAlreadyExistsError,
    ContextInUseError,
    ContextNotFoundError,
    InvalidContextNameError,
    InvalidEndpointOptionError,
    PersistenceError,
)

context_names = st.from_regex(r"\A[A-Za-z0-9][A-Za-z0-9_.+-]{0,20}\Z").filter(
    lambda name: name != "default"
)


def _attempt_create(args):
    """Create the same context from a separate process."""
    root, worker = args
    store = ContextStore(root)
    try:
        store.create("race", "docker", f"worker {worker}", DockerEndpoint(host=f"tcp://w{worker}"))
    except ContextAlreadyExistsError:
        return "exists"
    return "created"


class TestContextNames:
    """Test context name validation."""

    @pytest.mark.parametrize(
        "name", ["local1", "k8s-prod", "my_ctx", "a", "v1.2+build", "0ctx"]
    )
    def test_valid_names(self, name):
        validate_context_name(name)

    @pytest.mark.parametrize(
        "name", ["", "default", "-leading", ".hidden", "has space", "a/b", "../up", "x\\y"]
    )
    def test_invalid_names(self, name):
        with pytest.raises(InvalidContextNameError):
            validate_context_name(name)


class TestContextStore:
    """Test ContextStore class."""

    def test_store_initialization_is_lazy(self, temp_dir):
        store = ContextStore(temp_dir / "contexts")

        assert store.root == temp_dir / "contexts"
        assert not store.root.exists()
        assert list(store.list_contexts()) == []

    def test_create_and_get_local(self, store):
        store.create("local1", "local", "", LocalEndpoint())

        context = store.get("local1")
        assert context.name == "local1"
        assert context.description == ""
        assert context.type == "local"
        assert context.endpoints == {"local": LocalEndpoint()}

    @pytest.mark.parametrize(
        "kind,descriptor",
        [
            ("example", ExampleEndpoint(data={"greeting": "hello"})),
            ("aci", AciEndpoint(subscription_id="sub", resource_group="rg", location="eastus")),
            (
                "kubernetes",
                KubernetesEndpoint(
                    config_file="/home/u/.kube/config",
                    context_override="prod",
                    namespace_override="web",
                ),
            ),
            (
                "docker",
                DockerEndpoint(
                    host="tcp://myserver:2376",
                    ca="/ca",
                    cert="/cert",
                    key="/key",
                    skip_tls_verify=False,
                ),
            ),
        ],
    )
    def test_create_get_round_trips_every_field(self, store, kind, descriptor):
        created = store.create("ctx", kind, "description", descriptor)

        retrieved = store.get("ctx")
        assert retrieved == created
        assert retrieved.endpoints[kind] == descriptor

    def test_record_is_visible_to_a_fresh_store(self, store):
        store.create("shared", "local", "", LocalEndpoint())

        other = ContextStore(store.root)
        assert other.get("shared").name == "shared"
        assert other.exists("shared")

    def test_record_layout(self, store):
        store.create("k8s1", "kubernetes", "dev cluster", KubernetesEndpoint(config_file="/kube"))

        path = store.meta_dir / "k8s1.json"
        data = json.loads(path.read_text())
        assert data["name"] == "k8s1"
        assert data["endpoints"] == {"kubernetes": {"config_file": "/kube"}}
        assert data["metadata_version"] == 1

    def test_create_duplicate_name(self, store):
        store.create("dup", "docker", "first", DockerEndpoint(host="tcp://h1"))
        path = store.meta_dir / "dup.json"
        before = path.read_bytes()

        with pytest.raises(ContextAlreadyExistsError) as exc_info:
            store.create("dup", "docker", "second", DockerEndpoint(host="tcp://h2"))

        assert "dup" in str(exc_info.value)
        assert exc_info.value.name == "dup"
        assert path.read_bytes() == before

    def test_create_empty_name_has_no_side_effects(self, store):
        store.create("existing", "local", "", LocalEndpoint())
        entries_before = sorted(os.listdir(store.meta_dir))

        with pytest.raises(InvalidContextNameError):
            store.create("", "local", "", LocalEndpoint())

        assert sorted(os.listdir(store.meta_dir)) == entries_before
        assert [s.name for s in store.list_contexts()] == ["existing"]

    def test_create_with_descriptor_of_other_kind(self, store):
        store.create("good", "local", "", LocalEndpoint())

        with pytest.raises(InvalidEndpointOptionError) as exc_info:
            store.create("bad", "docker", "", KubernetesEndpoint(config_file="/k"))

        assert exc_info.value.endpoint_kind == "docker"
        assert sorted(os.listdir(store.meta_dir)) == ["good.json"]
        assert [s.name for s in store.list_contexts()] == ["good"]

    def test_create_with_unknown_kind(self, store):
        with pytest.raises(InvalidEndpointOptionError) as exc_info:
            store.create("odd", "swarm", "", LocalEndpoint())

        assert exc_info.value.endpoint_kind == "swarm"
        assert not store.root.exists()
        assert list(store.list_contexts()) == []

    def test_update_with_descriptor_of_other_kind(self, store):
        context = store.create("ctx", "docker", "", DockerEndpoint(host="tcp://h1"))
        before = (store.meta_dir / "ctx.json").read_bytes()
        context.endpoints["docker"] = KubernetesEndpoint(config_file="/k")

        with pytest.raises(InvalidEndpointOptionError):
            store.update(context)

        assert (store.meta_dir / "ctx.json").read_bytes() == before

    def test_names_differing_only_in_case_collide(self, store):
        store.create("Prod", "local", "", LocalEndpoint())

        with pytest.raises(ContextAlreadyExistsError):
            store.create("prod", "local", "", LocalEndpoint())

        assert sorted(os.listdir(store.meta_dir)) == ["Prod.json"]
        assert [s.name for s in store.list_contexts()] == ["Prod"]

    def test_create_on_empty_store_with_invalid_name_writes_nothing(self, store):
        with pytest.raises(InvalidContextNameError):
            store.create("../escape", "local", "", LocalEndpoint())

        assert not store.root.exists()

    def test_get_not_found(self, store):
        with pytest.raises(ContextNotFoundError) as exc_info:
            store.get("missing")

        assert exc_info.value.name == "missing"

    def test_get_path_unsafe_name_is_not_found(self, store):
        with pytest.raises(ContextNotFoundError):
            store.get("../../etc/passwd")

    def test_get_corrupt_record(self, store):
        store.create("broken", "local", "", LocalEndpoint())
        (store.meta_dir / "broken.json").write_text("{not json")

        with pytest.raises(PersistenceError) as exc_info:
            store.get("broken")

        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)

    def test_get_record_with_unknown_endpoint_kind(self, store):
        store.create("odd", "local", "", LocalEndpoint())
        path = store.meta_dir / "odd.json"
        data = json.loads(path.read_text())
        data["endpoints"] = {"swarm": {}}
        path.write_text(json.dumps(data))

        with pytest.raises(PersistenceError):
            store.get("odd")

    def test_list_ordered_by_name(self, store):
        for name in ["charlie", "alpha", "bravo"]:
            store.create(name, "local", f"{name} context", LocalEndpoint())

        summaries = list(store.list_contexts())
        assert [s.name for s in summaries] == ["alpha", "bravo", "charlie"]
        assert summaries[0].description == "alpha context"
        assert summaries[0].endpoint_kinds == ("local",)

    def test_list_is_restartable(self, store):
        listing = store.list_contexts()
        store.create("first", "local", "", LocalEndpoint())
        assert [s.name for s in listing] == ["first"]

        store.create("second", "local", "", LocalEndpoint())
        assert [s.name for s in listing] == ["first", "second"]
        assert [s.name for s in listing] == ["first", "second"]

    def test_list_ignores_temp_files(self, store):
        store.create("real", "local", "", LocalEndpoint())
        (store.meta_dir / ".tmp-abc123.json").write_text("{partial")

        assert [s.name for s in store.list_contexts()] == ["real"]

    def test_update_replaces_record(self, store):
        context = store.create("ctx", "docker", "old", DockerEndpoint(host="tcp://h1"))
        context.description = "new"
        context.endpoints["docker"] = DockerEndpoint(host="tcp://h2")

        store.update(context)

        retrieved = store.get("ctx")
        assert retrieved.description == "new"
        assert retrieved.endpoints["docker"].host == "tcp://h2"

    def test_update_missing(self, store):
        with pytest.raises(ContextNotFoundError):
            store.update(Context(name="ghost", type="local"))

    def test_remove(self, store):
        store.create("gone", "local", "", LocalEndpoint())

        store.remove("gone")

        assert not store.exists("gone")
        with pytest.raises(ContextNotFoundError):
            store.get("gone")

    def test_remove_missing(self, store):
        with pytest.raises(ContextNotFoundError):
            store.remove("missing")

    def test_remove_active_context(self, temp_dir):
        store = ContextStore(temp_dir, active_context_provider=lambda: "active")
        store.create("active", "local", "", LocalEndpoint())

        with pytest.raises(ContextInUseError) as exc_info:
            store.remove("active")

        assert exc_info.value.name == "active"
        assert store.exists("active")

    def test_write_failure_leaves_store_unchanged(self, store, monkeypatch):
        store.create("kept", "local", "", LocalEndpoint())

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("contextstore.core.store.os.replace", failing_replace)

        with pytest.raises(PersistenceError) as exc_info:
            store.create("new", "local", "", LocalEndpoint())

        assert isinstance(exc_info.value.__cause__, OSError)
        assert sorted(os.listdir(store.meta_dir)) == ["kept.json"]
        assert not store.exists("new")

    def test_concurrent_create_has_one_winner(self, temp_dir):
        root = str(temp_dir / "contexts")
        ctx = multiprocessing.get_context("fork")

        with ctx.Pool(4) as pool:
            results = pool.map(_attempt_create, [(root, worker) for worker in range(8)])

        assert results.count("created") == 1
        assert results.count("exists") == 7

        store = ContextStore(root)
        context = store.get("race")
        winner = context.description.split()[-1]
        assert context.endpoints["docker"] == DockerEndpoint(host=f"tcp://w{winner}")
        assert [s.name for s in store.list_contexts()] == ["race"]

    def test_open_store_from_config(self, temp_dir):
        config = ContextStoreConfig(
            storage=StorageConfig(root=str(temp_dir / "configured")),
            current_context="prod",
        )

        store = open_store(config)
        store.create("prod", "local", "", LocalEndpoint())

        assert store.root == temp_dir / "configured"
        with pytest.raises(ContextInUseError):
            store.remove("prod")


class TestContextStoreProperties:
    """Property-based tests for the context store."""

    @given(
        names=st.lists(
            context_names, min_size=2, max_size=6, unique_by=lambda name: name.lower()
        )
    )
    def test_list_returns_all_created_names_sorted(self, names):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = ContextStore(Path(tmpdir))
            for name in names:
                store.create(name, "local", "", LocalEndpoint())

            assert [s.name for s in store.list_contexts()] == sorted(names)

    @given(
        name=context_names,
        description=st.text(max_size=40),
        host=st.one_of(st.none(), st.text(min_size=1, max_size=40)),
        skip=st.one_of(st.none(), st.booleans()),
    )
    def test_docker_endpoint_round_trip(self, name, description, host, skip):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = ContextStore(Path(tmpdir))
            descriptor = DockerEndpoint(host=host, skip_tls_verify=skip)

            store.create(name, "docker", description, descriptor)

            retrieved = store.get(name)
            assert retrieved.description == description
            assert retrieved.endpoints == {"docker": descriptor}
