"""
pytest fixtures for engine tests

Registered through the pytest11 entry point, so installing the package is
enough:

    @pytest.mark.index(schema="schema.xml", config="solrconfig.xml")
    def test_find(harness, request_factory):
        assert_update(harness, adoc(harness, "id", "1"))
        assert_update(harness, commit(harness))
        assert_query(harness, req(request_factory, "id:1"), "//result[@numFound='1']")
"""
import pytest

from kbtestkit.config import TestkitConfig, default_config
from kbtestkit.lifecycle import IndexEnvironment


def pytest_addoption(parser):
    group = parser.getgroup("kbtestkit")
    group.addoption(
        "--leave-data-dir",
        action="store_true",
        default=False,
        help="Keep per-test index data directories after teardown",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "index(schema=None, config=None, retain=None): schema/config the index_env fixture binds",
    )


@pytest.fixture
def testkit_config() -> TestkitConfig:
    """Configuration used by index_env; override to customize"""
    return default_config


@pytest.fixture
def index_env(request, testkit_config):
    """Set-up IndexEnvironment for the requesting test, torn down afterwards"""
    marker = request.node.get_closest_marker("index")
    options = dict(marker.kwargs) if marker else {}

    retain = options.get("retain")
    if retain is None and request.config.getoption("--leave-data-dir"):
        retain = True

    owner = request.node.module.__name__
    if request.cls is not None:
        owner = f"{owner}.{request.cls.__qualname__}"

    env = IndexEnvironment(
        schema_file=options.get("schema") or testkit_config.engine.schema_file,
        config_file=options.get("config") or testkit_config.engine.config_file,
        class_name=owner,
        test_name=request.node.name,
        retain_data_dir=retain,
        config=testkit_config,
    )
    env.set_up()
    yield env
    env.tear_down()


@pytest.fixture
def harness(index_env):
    """Harness bound to this test's index"""
    return index_env.harness


@pytest.fixture
def request_factory(index_env):
    """Default request factory for this test's index"""
    return index_env.request_factory
