"""
Configuration for the index test kit

Defaults mirror the conventional request shape used by engine tests:
the "standard" handler, rows 0..20, response format version 2.2.
"""
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class WorkspaceConfig:
    """Per-test working directory configuration"""
    temp_root: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    retain_data_dir: bool = False  # Keep data dirs after teardown (debugging)


@dataclass
class RequestDefaults:
    """Defaults applied to every query request built by the request factory"""
    handler: str = "standard"
    start: int = 0
    rows: int = 20
    version_param: str = "version"
    version: str = "2.2"

    def as_args(self) -> tuple:
        """Extra name/value args passed to the request factory"""
        return (self.version_param, self.version)


@dataclass
class EngineDefaults:
    """Schema and config references used when a test does not name its own"""
    schema_file: str = "schema.xml"
    config_file: str = "solrconfig.xml"


@dataclass
class TestkitConfig:
    """Main configuration container"""
    __test__ = False  # not a pytest test class

    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    requests: RequestDefaults = field(default_factory=RequestDefaults)
    engine: EngineDefaults = field(default_factory=EngineDefaults)

    @classmethod
    def from_env(cls) -> 'TestkitConfig':
        """Create config from environment - delegates to EnvironmentConfigLoader"""
        from kbtestkit.environment_config_loader import EnvironmentConfigLoader
        return EnvironmentConfigLoader().load()

    @classmethod
    def from_yaml(cls, path: Path) -> 'TestkitConfig':
        """Load configuration from YAML file.

        Args:
            path: Path to a kbtestkit.yaml file

        Returns:
            TestkitConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        with open(path) as f:
            data = yaml.safe_load(f)

        return cls._from_dict(data or {})

    @classmethod
    def _from_dict(cls, data: dict) -> 'TestkitConfig':
        """Create config from dictionary, missing sections take defaults"""
        workspace_data = dict(data.get('workspace') or {})
        if 'temp_root' in workspace_data:
            workspace_data['temp_root'] = Path(workspace_data['temp_root'])
        if 'retain_data_dir' in workspace_data:
            workspace_data['retain_data_dir'] = is_retain_signal(workspace_data['retain_data_dir'])

        return cls(
            workspace=WorkspaceConfig(**workspace_data),
            requests=RequestDefaults(**(data.get('requests') or {})),
            engine=EngineDefaults(**(data.get('engine') or {})),
        )


def is_retain_signal(value: Optional[object]) -> bool:
    """Any non-blank value asks for the data dir to be kept.

    Booleans are taken at face value so YAML `false` keeps its meaning.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return len(str(value).strip()) != 0


# Default instance
default_config = TestkitConfig.from_env()
