"""Shared pytest fixtures for versionsentinel tests."""

import pytest


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep catalog settings from the developer's shell out of the tests."""
    for key in (
        "VERSIONSENTINEL_CATALOG_TIMEOUT",
        "VERSIONSENTINEL_CATALOG_CONCURRENCY",
        "VERSIONSENTINEL_STRICT_CATALOG",
        "VERSIONSENTINEL_MAVEN_REPOSITORY_URL",
    ):
        monkeypatch.delenv(key, raising=False)
