"""
In-process engine harness bound to one data directory

The harness is the only thing tests talk to: it accepts update messages,
executes query requests, serializes documents and delete messages, and
checks responses with XPath test expressions.
"""
import logging
import sqlite3
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from kbtestkit.engine.query_parser import QueryParseError, QueryParser
from kbtestkit.engine.request import LocalRequestFactory, QueryRequest
from kbtestkit.engine.response_writer import FieldList, XMLResponseWriter
from kbtestkit.engine.schema import get_config, get_schema
from kbtestkit.engine.searcher import IndexSearcher
from kbtestkit.engine.store import DocumentStore
from kbtestkit.engine.update_handler import XMLUpdateHandler
from kbtestkit.engine.xpath_validator import validate_xpath
from kbtestkit.errors import HarnessClosedError, HarnessSetupError
from kbtestkit.xml_writer import pairs, start_tag, write_unescaped_xml, write_xml

logger = logging.getLogger(__name__)


class TestHarness:
    """Engine instance plus the helpers tests need to drive it.

    Usage:
        harness = TestHarness(data_dir, "solrconfig.xml", "schema.xml")
        harness.validate_update(harness.make_simple_doc("id", "1"))
        ...
        harness.close()
    """

    __test__ = False  # not a pytest test class

    def __init__(self, data_dir, config_name: str = "solrconfig.xml",
                 schema_name: str = "schema.xml"):
        self.data_dir = Path(data_dir)
        self.config = get_config(config_name)
        self.schema = get_schema(schema_name)
        if not self.data_dir.is_dir():
            raise HarnessSetupError(f"Data directory does not exist: {self.data_dir}")

        try:
            self.store = DocumentStore(self.data_dir).open()
        except sqlite3.Error as e:
            raise HarnessSetupError(f"Could not open index in {self.data_dir}: {e}") from e

        self.update_handler = XMLUpdateHandler(self.store, self.schema)
        self.query_parser = QueryParser(self.schema)
        self.writer = XMLResponseWriter()
        self._searchers: List[IndexSearcher] = []
        self.closed = False
        logger.debug(
            f"Opened harness on {self.data_dir} (config={config_name}, schema={schema_name})"
        )

    # === UPDATES ===

    def validate_update(self, xml: str) -> Optional[str]:
        """Process an update message.

        Returns:
            None if the update succeeded, otherwise a diagnostic message

        Raises:
            InvalidXMLError: If the message is not well-formed
        """
        self._ensure_open()
        return self.update_handler.handle(xml)

    def make_simple_doc(self, *fields_and_values: str) -> str:
        """<doc> fragment from alternating field names and values.

        Raises:
            ValueError: If an odd number of strings is supplied
        """
        parts = ['<doc>']
        for name, value in pairs(fields_and_values, "field name/value"):
            parts.append(write_xml('field', value, ['name', name]))
        parts.append('</doc>')
        return ''.join(parts)

    def delete_by_id(self, doc_id: str) -> str:
        """<delete><id>...</id></delete> message"""
        return write_unescaped_xml('delete', write_xml('id', doc_id))

    def delete_by_query(self, query: str) -> str:
        """<delete><query>...</query></delete> message"""
        return write_unescaped_xml('delete', write_xml('query', query))

    def commit(self, *args: str) -> str:
        """<commit/> message, args are alternating attribute names/values"""
        return start_tag('commit', args, close=True)

    def optimize(self, *args: str) -> str:
        """<optimize/> message, args are alternating attribute names/values"""
        return start_tag('optimize', args, close=True)

    # === QUERIES ===

    def get_request_factory(self, handler: str, start: int, rows: int,
                            *args: str) -> LocalRequestFactory:
        """Factory for requests with default handler, paging and extra args"""
        return LocalRequestFactory(handler, start, rows, args)

    def query(self, request: QueryRequest) -> str:
        """Execute a request and return the XML response.

        Request errors (unknown handler, bad parameters, unparsable query) are
        reported in the response with a non-zero status, as the engine would.
        The request keeps a searcher until it is closed.
        """
        self._ensure_open()
        started = time.monotonic()
        params = request.params

        handler = request.get("qt") or self.config.default_handler
        if handler not in self.config.handlers:
            return self.writer.write_error(400, f"unknown handler: {handler}", params)

        q = request.get("q")
        if q is None:
            return self.writer.write_error(400, "missing query string", params)

        try:
            query = self.query_parser.parse(q)
            start = request.get_int("start", 0)
            rows = request.get_int("rows", 10)
            if start < 0 or rows < 0:
                raise ValueError(f"start and rows must not be negative: start={start}, rows={rows}")
            sort = self._parse_sort(request.get("sort"))
        except (QueryParseError, ValueError) as e:
            return self.writer.write_error(400, str(e), params)

        if request.searcher is None:
            request.searcher = self._open_searcher()
        result = request.searcher.search(query, start=start, rows=rows, sort=sort)
        qtime = int((time.monotonic() - started) * 1000)
        return self.writer.write_results(result, params, FieldList(request.get("fl")), qtime)

    def validate_xpath(self, xml: str, *tests: str) -> Optional[str]:
        """First test expression that does not hold on xml, or None"""
        return validate_xpath(xml, tests)

    def _parse_sort(self, sort: Optional[str]) -> Optional[List[Tuple[str, bool]]]:
        """'price desc, id asc' -> [('price', True), ('id', False)]"""
        if not sort:
            return None
        keys = []
        for part in sort.split(','):
            words = part.split()
            if len(words) != 2 or words[1].lower() not in ('asc', 'desc'):
                raise ValueError(f"Can't determine sort order: '{part.strip()}'")
            keys.append((words[0], words[1].lower() == 'desc'))
        return keys

    def _open_searcher(self) -> IndexSearcher:
        """Searcher over the last committed state"""
        searcher = IndexSearcher(self.store.load_documents(), self.schema, self._release_searcher)
        self._searchers.append(searcher)
        return searcher

    def _release_searcher(self, searcher: IndexSearcher):
        """Called by a searcher when its request is closed"""
        if searcher in self._searchers:
            self._searchers.remove(searcher)

    @property
    def open_searchers(self) -> int:
        """Searchers acquired by requests that have not been closed"""
        return len(self._searchers)

    # === LIFECYCLE ===

    def _ensure_open(self):
        if self.closed:
            raise HarnessClosedError(f"Harness on {self.data_dir} is closed")

    def close(self):
        """Release all engine resources. Safe to call more than once."""
        if self.closed:
            return
        if self._searchers:
            logger.warning(f"{len(self._searchers)} searcher(s) still open at close: "
                           "a query request was not closed")
        for searcher in list(self._searchers):
            searcher.release()
        self.store.close()
        self.closed = True
        logger.debug(f"Closed harness on {self.data_dir}")

    def __enter__(self) -> 'TestHarness':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
