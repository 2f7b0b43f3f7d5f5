"""
Structural validation of XML responses with XPath 1.0 (lxml)

A test expression holds when its result is truthy: a non-empty node set,
boolean true, a non-zero number or a non-empty string. So both
"//result[@numFound='1']" and "count(//doc)=1" are valid tests.
"""
import math
from typing import Optional, Sequence

from lxml import etree

from kbtestkit.errors import InvalidXMLError, InvalidXPathError


def validate_xpath(xml: str, tests: Sequence[str]) -> Optional[str]:
    """Evaluate tests in order, stopping at the first that does not hold.

    Returns:
        The first failing test expression, or None when all hold

    Raises:
        InvalidXMLError: If the response cannot be parsed
        InvalidXPathError: If a test expression is malformed
    """
    if not tests:
        return None

    try:
        document = etree.fromstring(xml.encode('utf-8')).getroottree()
    except etree.XMLSyntaxError as e:
        raise InvalidXMLError(f"Response is not well-formed XML: {e}") from e

    for test in tests:
        try:
            # Evaluated against the document node, so relative paths start above <response>
            result = document.xpath(test)
        except etree.XPathError as e:
            raise InvalidXPathError(test, str(e)) from e
        if not _holds(result):
            return test
    return None


def _holds(result) -> bool:
    """XPath boolean() conversion"""
    if isinstance(result, bool):
        return result
    if isinstance(result, float):
        return result != 0 and not math.isnan(result)
    # strings and node sets
    return len(result) > 0
