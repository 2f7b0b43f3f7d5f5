"""
Builders for update messages and query requests

Every builder takes the harness (or request factory) explicitly; serialization
of documents and delete messages is left to the harness so that payloads match
what its update endpoint expects.
"""
from dataclasses import dataclass

from kbtestkit.engine.harness import TestHarness
from kbtestkit.engine.request import LocalRequestFactory, QueryRequest
from kbtestkit.xml_writer import write_unescaped_xml


@dataclass(frozen=True)
class Doc:
    """A rendered <doc> fragment.

    Exists so add() can tell a document from a plain string.
    """
    xml: str

    def __str__(self) -> str:
        return self.xml


def doc(harness: TestHarness, *fields_and_values: str) -> Doc:
    """<doc> from alternating field names and values, order preserved.

    Raises:
        ValueError: If an odd number of strings is supplied
    """
    if len(fields_and_values) % 2 != 0:
        raise ValueError(
            f"doc() needs alternating field names and values, got {len(fields_and_values)} "
            f"strings: {list(fields_and_values)!r}"
        )
    return Doc(xml=harness.make_simple_doc(*fields_and_values))


def add(document: Doc, *args: str) -> str:
    """<add> message for one document.

    Args:
        document: The document to add
        args: Alternating attribute names and values for <add>

    Raises:
        ValueError: If an odd number of args is supplied
    """
    if not args:
        return "<add>" + document.xml + "</add>"
    # The doc fragment is already markup; only the attribute values get escaped
    return write_unescaped_xml("add", document.xml, args)


def adoc(harness: TestHarness, *fields_and_values: str) -> str:
    """<add><doc>... message with no options"""
    return add(doc(harness, *fields_and_values))


def del_id(harness: TestHarness, doc_id: str) -> str:
    """<delete> message for a unique key"""
    return harness.delete_by_id(doc_id)


def del_query(harness: TestHarness, query: str) -> str:
    """<delete> message for a query"""
    return harness.delete_by_query(query)


def commit(harness: TestHarness, *args: str) -> str:
    """<commit/> message"""
    return harness.commit(*args)


def optimize(harness: TestHarness, *args: str) -> str:
    """<optimize/> message"""
    return harness.optimize(*args)


def req(factory: LocalRequestFactory, *q: str) -> QueryRequest:
    """Query request using the factory's defaults"""
    return factory.make_request(*q)
