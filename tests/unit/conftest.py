"""
Unit test fixtures: factory-built models and in-memory collaborators.
"""

import pytest

from tests.factories.fakes import (
    InMemoryContentStore,
    RecordingPublisher,
    ScriptedClassifier,
    ScriptedEmbedder,
)
from tests.factories.model_factories import make_analysis, make_content


@pytest.fixture
def content():
    """Return a randomized PENDING content item."""
    return make_content()


@pytest.fixture
def approved_analysis():
    """Return a randomized approving AnalysisResult."""
    return make_analysis(approved=True)


@pytest.fixture
def store():
    return InMemoryContentStore()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def classifier():
    return ScriptedClassifier()


@pytest.fixture
def embedder():
    return ScriptedEmbedder(dimensions=8)
