"""In-process search engine adapter used as the test harness collaborator"""
from kbtestkit.engine.harness import TestHarness
from kbtestkit.engine.request import LocalRequestFactory, QueryRequest
from kbtestkit.engine.schema import (
    EngineConfig, IndexSchema, get_config, get_schema, register_config, register_schema
)

__all__ = [
    'TestHarness',
    'LocalRequestFactory',
    'QueryRequest',
    'EngineConfig',
    'IndexSchema',
    'get_config',
    'get_schema',
    'register_config',
    'register_schema',
]
