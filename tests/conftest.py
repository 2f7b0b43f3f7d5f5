"""
Pytest configuration and shared fixtures

The index_env / harness / request_factory fixtures come from
kbtestkit.pytest_plugin; testkit_config is overridden here so every data
dir lands under the test's tmp_path.
"""
import pytest
from pathlib import Path
from unittest.mock import Mock

from kbtestkit.config import TestkitConfig, WorkspaceConfig
from kbtestkit.engine.request import QueryRequest


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def temp_root(tmp_path) -> Path:
    """Directory under which working directories are created"""
    root = tmp_path / "indexes"
    root.mkdir()
    return root


@pytest.fixture
def testkit_config(temp_root) -> TestkitConfig:
    """Config pointing the plugin fixtures at temp_root, never retaining"""
    return TestkitConfig(workspace=WorkspaceConfig(temp_root=temp_root, retain_data_dir=False))


# =============================================================================
# Harness Stub Fixtures
# =============================================================================

SAMPLE_RESPONSE = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<response><lst name="responseHeader"><int name="status">0</int></lst>'
    '<result name="response" numFound="1" start="0">'
    '<doc><str name="id">42</str><str name="name">answer</str></doc>'
    '</result></response>'
)


@pytest.fixture
def stub_harness():
    """Harness double: updates succeed, queries return SAMPLE_RESPONSE.

    validate_xpath is left as a Mock; tests set its return_value/side_effect.
    """
    harness = Mock()
    harness.validate_update.return_value = None
    harness.query.return_value = SAMPLE_RESPONSE
    harness.validate_xpath.return_value = None
    return harness


@pytest.fixture
def query_request():
    """A QueryRequest whose close() is observable"""
    request = QueryRequest([("q", "id:42")])
    request.close = Mock(wraps=request.close)
    return request


# =============================================================================
# Filesystem Fixtures
# =============================================================================

@pytest.fixture
def nested_tree(tmp_path) -> Path:
    """Directory with nested files and subdirectories"""
    root = tmp_path / "tree"
    (root / "a" / "b" / "c").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "top.txt").write_text("top")
    (root / "a" / "one.txt").write_text("one")
    (root / "a" / "b" / "two.txt").write_text("two")
    (root / "a" / "b" / "c" / "three.bin").write_bytes(b"\x00\x01")
    return root
