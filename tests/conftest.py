"""Shared pytest fixtures for swayr tests."""

import pytest

from swayr.models.config import SwayrConfig
from swayr.services.app_icons import AppIconResolver
from swayr.state import StateManager
from swayr.tree_model import TreeModel

from tests.fixtures.mock_sway_connection import MockSwayConnection
from tests.fixtures.sway_tree import standard_tree


@pytest.fixture
def tree_payload():
    """Raw GET_TREE payload with window 101 focused."""
    return standard_tree()


@pytest.fixture
def model(tree_payload):
    """Tree model with recency 101 (most recent), 201, 102, 104."""
    m = TreeModel.from_ipc(tree_payload)
    for node_id in (104, 102, 201, 101):
        m.touch(node_id)
    return m


@pytest.fixture
def state(model):
    return StateManager(model)


@pytest.fixture
def sway(tree_payload):
    return MockSwayConnection(tree_payload, outputs=[{"name": "DP-1", "modes": [{"width": 1920, "height": 1080}]}])


@pytest.fixture
def config():
    return SwayrConfig()


@pytest.fixture
def icons():
    """Icon resolver that never touches the filesystem."""
    return AppIconResolver([], entry_dirs=[])
