"""
XML update message handler

Accepted messages:
    <add [overwrite="true|false"] [allowDups="true|false"] [commitWithin="ms"]>
        <doc><field name="id">1</field>...</doc>...
    </add>
    <delete><id>1</id><query>field:value</query>...</delete>
    <commit/>  <optimize/>  <rollback/>

Rejections are returned as diagnostic strings. Malformed XML raises
InvalidXMLError: it is a fault of the message author, not of the engine.
"""
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional, Tuple

from kbtestkit.engine.query_parser import QueryMatcher, QueryParseError, QueryParser
from kbtestkit.engine.schema import IndexSchema
from kbtestkit.engine.store import DocumentStore
from kbtestkit.errors import InvalidXMLError

logger = logging.getLogger(__name__)


class UpdateRejected(Exception):
    """An update message was well-formed but not acceptable"""


class XMLUpdateHandler:
    """Applies update messages to a document store"""

    def __init__(self, store: DocumentStore, schema: IndexSchema):
        self.store = store
        self.schema = schema
        self.parser = QueryParser(schema)
        self.matcher = QueryMatcher(schema)

    def handle(self, message: str) -> Optional[str]:
        """Apply one update message.

        Returns:
            None on success, otherwise a diagnostic describing the rejection

        Raises:
            InvalidXMLError: If the message is not well-formed XML
        """
        try:
            root = ET.fromstring(message)
        except ET.ParseError as e:
            raise InvalidXMLError(f"Malformed update message: {e}") from e

        handlers = {
            'add': self._add,
            'delete': self._delete,
            'commit': self._commit,
            'optimize': self._optimize,
            'rollback': self._rollback,
        }
        handler = handlers.get(root.tag)
        if handler is None:
            return f"unexpected XML tag /{root.tag}"

        try:
            handler(root)
        except UpdateRejected as e:
            logger.debug(f"Update rejected: {e}")
            return str(e)
        return None

    def _add(self, root: ET.Element):
        """Add or replace documents"""
        overwrite = _flag(root, 'overwrite', True) and not _flag(root, 'allowDups', False)
        for child in root:
            if child.tag != 'doc':
                raise UpdateRejected(f"unexpected XML tag add/{child.tag}")
            fields = self._read_fields(child)
            key = self._unique_key(fields)
            self.store.add(fields, key=key, overwrite=overwrite)

    def _read_fields(self, doc: ET.Element) -> List[Tuple[str, str]]:
        """Collect (name, value) pairs in document order"""
        fields = []
        for element in doc:
            if element.tag != 'field':
                raise UpdateRejected(f"unexpected XML tag doc/{element.tag}")
            name = element.get('name')
            if not name:
                raise UpdateRejected("field element is missing the 'name' attribute")
            fields.append((name, element.text or ""))
        return fields

    def _unique_key(self, fields: List[Tuple[str, str]]) -> Optional[str]:
        """Unique key value, enforced when the schema declares one"""
        key_field = self.schema.unique_key
        if key_field is None:
            return None
        values = [value for name, value in fields if name == key_field]
        if not values:
            raise UpdateRejected(f"Document is missing mandatory uniqueKey field: {key_field}")
        if len(values) > 1:
            raise UpdateRejected(
                f"Document contains multiple values for uniqueKey field: {key_field}={values}"
            )
        return values[0]

    def _delete(self, root: ET.Element):
        """Delete by id and/or by query"""
        for child in root:
            if child.tag == 'id':
                if self.schema.unique_key is None:
                    raise UpdateRejected("delete by id requires a schema with a uniqueKey field")
                # Keys are stored verbatim
                self.store.delete_by_key(child.text or "")
            elif child.tag == 'query':
                self._delete_by_query((child.text or "").strip())
            else:
                raise UpdateRejected(f"unexpected XML tag delete/{child.tag}")

    def _delete_by_query(self, text: str):
        """Delete every document, pending ones included, matching the query"""
        try:
            query = self.parser.parse(text)
        except QueryParseError as e:
            raise UpdateRejected(f"Invalid delete query '{text}': {e}") from e
        doomed = [
            doc.doc_id for doc in self.store.load_documents(include_pending=True)
            if self.matcher.matches(query, doc)
        ]
        deleted = self.store.delete_ids(doomed)
        logger.debug(f"delete by query '{text}' removed {deleted} documents")

    def _commit(self, root: ET.Element):
        self.store.commit()

    def _optimize(self, root: ET.Element):
        self.store.optimize()

    def _rollback(self, root: ET.Element):
        self.store.rollback()


def _flag(element: ET.Element, name: str, default: bool) -> bool:
    """Boolean attribute"""
    value = element.get(name)
    if value is None:
        return default
    return value.strip().lower() == "true"
