"""
Pytest configuration and shared fixtures for Contextstore tests.
"""

import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from contextstore.core.store import ContextStore


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test files.

    Yields:
        Path to temporary directory that is cleaned up after test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir: Path) -> ContextStore:
    """Context store rooted in a fresh temporary directory."""
    return ContextStore(temp_dir / "contexts")


@pytest.fixture
def make_config_yaml(temp_dir: Path):
    """
    Factory fixture that writes a configuration file and returns its path.

    Usage:
        def test_something(make_config_yaml):
            path = make_config_yaml("current_context: dev\\n")
    """
    def _make_config(content: str) -> Path:
        config_path = temp_dir / "config.yaml"
        config_path.write_text(content)
        return config_path

    return _make_config


# Hypothesis settings for property-based tests
from hypothesis import settings, Verbosity

settings.register_profile("contextstore", max_examples=50, deadline=None, verbosity=Verbosity.normal)
settings.register_profile("contextstore-ci", max_examples=500, deadline=None, verbosity=Verbosity.verbose)
settings.register_profile("contextstore-dev", max_examples=10, deadline=None, verbosity=Verbosity.verbose)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "contextstore"))
