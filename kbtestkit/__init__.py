"""
kb-testkit: declarative test harness for a document search engine

Provisions an isolated index per test, builds update and query payloads, and
checks responses with XPath assertions.
"""
from kbtestkit.assertions import assert_query, assert_update
from kbtestkit.builders import (
    Doc, add, adoc, commit, del_id, del_query, doc, optimize, req
)
from kbtestkit.config import TestkitConfig, default_config
from kbtestkit.errors import (
    AuthoringError,
    HarnessAssertionError,
    HarnessError,
    QueryAssertionError,
    TestkitError,
    UpdateAssertionError,
    WorkspaceError,
)
from kbtestkit.lifecycle import IndexEnvironment, recurse_delete
from kbtestkit.testcase import AbstractIndexTestCase

__version__ = "0.1.0"

__all__ = [
    'assert_query',
    'assert_update',
    'Doc',
    'add',
    'adoc',
    'commit',
    'del_id',
    'del_query',
    'doc',
    'optimize',
    'req',
    'TestkitConfig',
    'default_config',
    'AuthoringError',
    'HarnessAssertionError',
    'HarnessError',
    'QueryAssertionError',
    'TestkitError',
    'UpdateAssertionError',
    'WorkspaceError',
    'IndexEnvironment',
    'recurse_delete',
    'AbstractIndexTestCase',
]
