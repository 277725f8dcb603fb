"""
Pytest configuration for Django tests.

Uses SQLite in-memory database and locmem caches - no external services
required.
"""

import os

# Set test settings module before importing Django
os.environ["DJANGO_SETTINGS_MODULE"] = "prism_project.settings_test"

import pytest  # noqa: E402
from django.core.cache import caches  # noqa: E402


@pytest.fixture(autouse=True)
def clear_caches():
    """Isolate tests from each other's cached results."""
    for alias in ("default", "transformers"):
        caches[alias].clear()
    yield
    for alias in ("default", "transformers"):
        caches[alias].clear()
