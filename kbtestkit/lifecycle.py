"""
Per-test index environment

Creates a uniquely named working directory, binds a harness to it, and removes
the directory again on teardown unless asked to keep it.
"""
import logging
import re
import time
from pathlib import Path
from typing import Optional

from kbtestkit.config import TestkitConfig, default_config
from kbtestkit.engine.harness import TestHarness
from kbtestkit.engine.request import LocalRequestFactory
from kbtestkit.errors import WorkspaceError

logger = logging.getLogger(__name__)

# Parametrized test ids may contain path separators
_SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]")


class IndexEnvironment:
    """Owns one working directory and the harness bound to it.

    Usage:
        env = IndexEnvironment("schema.xml", "solrconfig.xml", "MyTest", "test_add")
        env.set_up()
        try:
            ...  # use env.harness and env.request_factory
        finally:
            env.tear_down()
    """

    def __init__(self, schema_file: str, config_file: str, class_name: str, test_name: str,
                 retain_data_dir: Optional[bool] = None, temp_root: Optional[Path] = None,
                 config: Optional[TestkitConfig] = None):
        self.config = config or default_config
        self.schema_file = schema_file
        self.config_file = config_file
        self.class_name = class_name
        self.test_name = test_name
        if retain_data_dir is None:
            retain_data_dir = self.config.workspace.retain_data_dir
        self.retain_data_dir = retain_data_dir
        self.temp_root = Path(temp_root or self.config.workspace.temp_root)

        self.data_dir: Optional[Path] = None
        self.harness: Optional[TestHarness] = None
        self.request_factory: Optional[LocalRequestFactory] = None
        self._torn_down = False

    def set_up(self) -> 'IndexEnvironment':
        """Create the data dir, bind the harness and the default request factory.

        Raises:
            WorkspaceError: If the data dir could not be created
        """
        self.data_dir = self._make_data_dir()
        try:
            self.harness = TestHarness(self.data_dir, self.config_file, self.schema_file)
        except Exception:
            recurse_delete(self.data_dir)
            raise
        defaults = self.config.requests
        self.request_factory = self.harness.get_request_factory(
            defaults.handler, defaults.start, defaults.rows, *defaults.as_args()
        )
        self._torn_down = False
        return self

    def tear_down(self):
        """Close the harness, then make a best effort to delete the data dir.

        Deletion failure is logged, never raised: it must not mask the
        outcome of the test itself.
        """
        if self._torn_down:
            return
        self._torn_down = True

        if self.harness is not None:
            self.harness.close()
        if self.data_dir is None:
            return

        if self.retain_data_dir:
            logger.info(f"NOTE: retaining data dir as requested: {self.data_dir.absolute()}")
        elif not recurse_delete(self.data_dir):
            logger.warning(f"!!!! WARNING: best effort to remove {self.data_dir.absolute()} FAILED !!!!!")

    def _make_data_dir(self) -> Path:
        """<temp_root>/<class>-<test>-<millis>, suffixed until unused"""
        name = _SAFE_NAME.sub("_", f"{self.class_name}-{self.test_name}")
        base = f"{name}-{int(time.time() * 1000)}"
        candidate = self.temp_root / base
        counter = 0
        while candidate.exists():
            counter += 1
            candidate = self.temp_root / f"{base}-{counter}"

        try:
            candidate.mkdir(parents=True)
        except OSError as e:
            raise WorkspaceError(f"Could not create data dir {candidate}: {e}") from e
        if not candidate.is_dir():
            raise WorkspaceError(f"Data dir {candidate} does not exist after creation")
        return candidate

    def __enter__(self) -> 'IndexEnvironment':
        return self.set_up()

    def __exit__(self, exc_type, exc, tb):
        self.tear_down()
        return False


def recurse_delete(path: Path) -> bool:
    """Depth-first delete; a directory goes only once its children are gone.

    Returns:
        False at the first entry that could not be removed, True otherwise
    """
    path = Path(path)
    try:
        if path.is_dir() and not path.is_symlink():
            for child in path.iterdir():
                if not recurse_delete(child):
                    return False
            path.rmdir()
        else:
            path.unlink()
    except OSError as e:
        logger.debug(f"Could not remove {path}: {e}")
        return False
    return True
