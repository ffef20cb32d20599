"""Shared test fixtures."""

import pytest

from radial_mindmap.core.expansion.controller import ExpansionController
from radial_mindmap.core.tree.store import TreeStore
from tests.unit.fakes import FakeIdeaGenerator, sequential_ids


@pytest.fixture
def store() -> TreeStore:
    """Return an empty store with predictable ids (n0, n1, ...)."""
    return TreeStore(id_factory=sequential_ids())


@pytest.fixture
def generator() -> FakeIdeaGenerator:
    return FakeIdeaGenerator(default=["A", "B", "C"])


@pytest.fixture
def controller(store: TreeStore, generator: FakeIdeaGenerator) -> ExpansionController:
    return ExpansionController(store, generator, timeout=1.0)


@pytest.fixture
def seeded_store(store: TreeStore) -> TreeStore:
    """Return a store holding Idea -> (A -> (A1, A2), B, C)."""
    root = store.create_root("Idea")
    a, _, _ = store.commit_expansion(root, ["A", "B", "C"])
    store.mark_loading(a)
    store.commit_expansion(a, ["A1", "A2"])
    return store
