"""Shared fixtures for conversation-recall tests."""

import pytest

from fakes import FakeEmbedding


@pytest.fixture
def fake_embedding():
    return FakeEmbedding()
