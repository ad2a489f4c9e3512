"""Shared test fixtures for the scheduling agent test suite."""

from __future__ import annotations

import os
import subprocess
import sys
from unittest.mock import MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ.setdefault("OPENAI_API_KEY", "test-openai-key-456")
    os.environ.setdefault("PISTON_PYTHON_VERSION", "3.10.0")


# ── Fakes ────────────────────────────────────────────────────────────


class LocalSandbox:
    """Stand-in for the Piston client that runs scripts in a local subprocess."""

    def __init__(self):
        self.calls: list[dict] = []

    def execute(self, language, code, args=()):
        from src.services.sandbox_client import ExecutionResult

        self.calls.append({"language": language, "code": code, "args": list(args)})
        proc = subprocess.run(
            [sys.executable, "-c", code, *args],
            capture_output=True,
            text=True,
            timeout=30,
        )
        return ExecutionResult(stdout=proc.stdout, stderr=proc.stderr, exit_code=proc.returncode)


@pytest.fixture
def local_sandbox():
    return LocalSandbox()


@pytest.fixture
def memory_store():
    """A DocumentStore backed by Qdrant's in-memory local mode and fake embeddings."""
    from langchain_core.embeddings import DeterministicFakeEmbedding
    from qdrant_client import QdrantClient

    from src.services.document_store import DocumentStore

    return DocumentStore(
        client=QdrantClient(location=":memory:"),
        embeddings=DeterministicFakeEmbedding(size=1536),
        vector_size=1536,
    )


@pytest.fixture
def mock_piston_response():
    """Factory fixture for creating mock Piston API responses."""

    def _make(data, status_code: int = 200):
        mock = MagicMock()
        mock.status_code = status_code
        mock.json.return_value = data
        mock.text = str(data)
        return mock

    return _make
