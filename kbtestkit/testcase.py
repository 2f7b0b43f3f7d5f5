"""
unittest base class for engine tests

Subclasses name the schema and config they want and write test methods; the
base class provisions and removes the index and offers assert helpers.

    class TestBasicQueries(AbstractIndexTestCase):
        def get_schema_file(self):
            return "schema.xml"

        def get_config_file(self):
            return "solrconfig.xml"

        def test_add_and_find(self):
            self.assertU(self.adoc("id", "42", "name", "answer"))
            self.assertU(self.commit())
            self.assertQ(self.req("id:42"), "//result[@numFound='1']")
"""
import unittest
from typing import Optional

from kbtestkit import assertions, builders
from kbtestkit.builders import Doc
from kbtestkit.config import TestkitConfig, default_config
from kbtestkit.engine.harness import TestHarness
from kbtestkit.engine.request import LocalRequestFactory, QueryRequest
from kbtestkit.lifecycle import IndexEnvironment


class AbstractIndexTestCase(unittest.TestCase):
    """Base class that creates/destroys the index around every test method"""

    # Override to keep data dirs for this class regardless of configuration
    retain_data_dir: Optional[bool] = None
    testkit_config: TestkitConfig = default_config

    env: IndexEnvironment
    h: TestHarness
    lrf: LocalRequestFactory

    def get_schema_file(self) -> str:
        """Name of the schema the harness is bound to"""
        raise NotImplementedError(f"{type(self).__name__} must define get_schema_file()")

    def get_config_file(self) -> str:
        """Name of the engine config the harness is bound to"""
        raise NotImplementedError(f"{type(self).__name__} must define get_config_file()")

    def setUp(self):
        super().setUp()
        self.env = IndexEnvironment(
            schema_file=self.get_schema_file(),
            config_file=self.get_config_file(),
            class_name=f"{type(self).__module__}.{type(self).__qualname__}",
            test_name=self._testMethodName,
            retain_data_dir=self.retain_data_dir,
            config=self.testkit_config,
        ).set_up()
        self.h = self.env.harness
        self.lrf = self.env.request_factory

    def tearDown(self):
        self.env.tear_down()
        super().tearDown()

    @property
    def data_dir(self):
        return self.env.data_dir

    # === ASSERTIONS ===

    def assertU(self, update: str, message: Optional[str] = None):
        """Validates an update XML string is successful"""
        assertions.assert_update(self.h, update, message=message)

    def assertQ(self, request: QueryRequest, *tests: str, message: Optional[str] = None):
        """Validates a query matches some XPath test expressions and closes the query"""
        assertions.assert_query(self.h, request, *tests, message=message)

    # === BUILDERS ===

    def doc(self, *fields_and_values: str) -> Doc:
        return builders.doc(self.h, *fields_and_values)

    def add(self, document: Doc, *args: str) -> str:
        return builders.add(document, *args)

    def adoc(self, *fields_and_values: str) -> str:
        return builders.adoc(self.h, *fields_and_values)

    def delI(self, doc_id: str) -> str:
        return builders.del_id(self.h, doc_id)

    def delQ(self, query: str) -> str:
        return builders.del_query(self.h, query)

    def commit(self, *args: str) -> str:
        return builders.commit(self.h, *args)

    def optimize(self, *args: str) -> str:
        return builders.optimize(self.h, *args)

    def req(self, *q: str) -> QueryRequest:
        return builders.req(self.lrf, *q)
