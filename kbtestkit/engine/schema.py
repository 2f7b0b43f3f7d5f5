"""
Schema and engine config registries

Schema and config references are resolved by name. Their on-disk formats are
never parsed here; a test that needs a different shape registers one.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from kbtestkit.errors import HarnessSetupError

_TOKEN_SPLIT = re.compile(r'\W+')


@dataclass(frozen=True)
class IndexSchema:
    """Field-level rules the engine applies to documents"""
    name: str
    unique_key: Optional[str] = "id"
    default_search_field: str = "text"
    # Every field is also searchable through the default search field
    copy_to_default: bool = True

    def tokenize(self, text: str) -> List[str]:
        """Lowercased word tokens"""
        return [t for t in _TOKEN_SPLIT.split(text.lower()) if t]


@dataclass(frozen=True)
class EngineConfig:
    """Request handlers an engine instance answers to"""
    name: str
    handlers: FrozenSet[str] = field(default_factory=lambda: frozenset({"standard", "lucene"}))
    default_handler: str = "standard"


_SCHEMAS: Dict[str, IndexSchema] = {}
_CONFIGS: Dict[str, EngineConfig] = {}


def register_schema(schema: IndexSchema) -> IndexSchema:
    """Make a schema available to harnesses by its name"""
    _SCHEMAS[schema.name] = schema
    return schema


def register_config(config: EngineConfig) -> EngineConfig:
    """Make an engine config available to harnesses by its name"""
    _CONFIGS[config.name] = config
    return config


def get_schema(name: str) -> IndexSchema:
    """Resolve a schema reference.

    Raises:
        HarnessSetupError: If no schema is registered under that name
    """
    try:
        return _SCHEMAS[name]
    except KeyError:
        raise HarnessSetupError(
            f"Unknown schema '{name}' (registered: {sorted(_SCHEMAS)})"
        ) from None


def get_config(name: str) -> EngineConfig:
    """Resolve an engine config reference.

    Raises:
        HarnessSetupError: If no config is registered under that name
    """
    try:
        return _CONFIGS[name]
    except KeyError:
        raise HarnessSetupError(
            f"Unknown config '{name}' (registered: {sorted(_CONFIGS)})"
        ) from None


register_schema(IndexSchema(name="schema.xml"))
register_schema(IndexSchema(name="schema-nouniq.xml", unique_key=None))
register_config(EngineConfig(name="solrconfig.xml"))
