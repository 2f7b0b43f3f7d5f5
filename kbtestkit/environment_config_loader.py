"""
Environment configuration loader.

Reads environment variables once, at config load time. Nothing in the
test kit consults the environment again after this.
"""
import os
from pathlib import Path

from kbtestkit.config import (
    TestkitConfig, WorkspaceConfig, RequestDefaults, EngineDefaults, is_retain_signal
)


class EnvironmentConfigLoader:
    """Loads configuration from environment variables.

    Single Responsibility: Environment access logic.
    """

    def load(self) -> TestkitConfig:
        """Create TestkitConfig from environment variables"""
        return TestkitConfig(
            workspace=self._load_workspace_config(),
            requests=self._load_request_defaults(),
            engine=self._load_engine_defaults()
        )

    def _load_workspace_config(self) -> WorkspaceConfig:
        """Load working directory configuration from environment"""
        defaults = WorkspaceConfig()
        return WorkspaceConfig(
            temp_root=Path(self._get_optional("KBTEST_TEMP_ROOT", str(defaults.temp_root))),
            retain_data_dir=is_retain_signal(os.getenv("KBTEST_LEAVE_DATA_DIR"))
        )

    def _load_request_defaults(self) -> RequestDefaults:
        """Load query request defaults from environment"""
        return RequestDefaults(
            rows=self._get_int("KBTEST_DEFAULT_ROWS", RequestDefaults.rows)
        )

    def _load_engine_defaults(self) -> EngineDefaults:
        """Load schema/config references from environment"""
        return EngineDefaults(
            schema_file=self._get_optional("KBTEST_SCHEMA_FILE", EngineDefaults.schema_file),
            config_file=self._get_optional("KBTEST_CONFIG_FILE", EngineDefaults.config_file)
        )

    def _get_optional(self, key: str, default: str) -> str:
        """Get optional string environment variable"""
        return os.getenv(key, default)

    def _get_int(self, key: str, default: int) -> int:
        """Get integer environment variable"""
        value = os.getenv(key, str(default))
        return int(value)
