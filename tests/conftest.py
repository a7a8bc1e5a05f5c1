"""Shared fixtures."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from helpers import FakeRoleBackend, InMemoryResourceStore, make_role_kind


@pytest.fixture(autouse=True)
def mock_kopf_event():
    """Kubernetes events need a running kopf operator; capture them instead."""
    with patch("vault_engine_operator.utils.events.kopf.event") as mock_event:
        yield mock_event


@pytest.fixture
def store():
    return InMemoryResourceStore()


@pytest.fixture
def backend():
    return FakeRoleBackend()


@pytest.fixture
def role_kind(backend):
    return make_role_kind(backend)
