"""Test configuration and fixtures."""

import threading
from pathlib import Path
from typing import Generator

import pytest

from docs_extractor.config.settings import Paths, Settings
from docs_extractor.ops import JobStore
from docs_extractor.persist import ArtifactStore


@pytest.fixture
def store() -> JobStore:
    """Empty job store."""
    return JobStore()


@pytest.fixture
def docs_dir(tmp_path) -> Path:
    """Directory for generated documents."""
    path = tmp_path / "generated-docs"
    path.mkdir()
    return path


@pytest.fixture
def artifacts(docs_dir) -> ArtifactStore:
    """Artifact store rooted in a temporary directory."""
    return ArtifactStore(docs_dir)


@pytest.fixture
def settings(docs_dir) -> Settings:
    """Settings pointing at the temporary docs directory, without API keys."""
    return Settings(paths=Paths(generated_docs=str(docs_dir)))


@pytest.fixture
def gate() -> Generator[threading.Event, None, None]:
    """
    Event that stub operations block on.

    Always released on teardown so no worker thread outlives the test.
    """
    event = threading.Event()
    yield event
    event.set()
