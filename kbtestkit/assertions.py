"""
Assertions that drive the harness and classify the outcome

Each call is submit -> observe -> classify:
- engine rejected the update / a test expression does not hold: assertion failure
- the payload or expression itself is malformed: AuthoringError (fatal)

Query requests are always closed before returning.
"""
import logging
from typing import Optional

from kbtestkit.engine.harness import TestHarness
from kbtestkit.engine.request import QueryRequest
from kbtestkit.errors import (
    AuthoringError, InvalidXMLError, InvalidXPathError, QueryAssertionError, UpdateAssertionError
)

logger = logging.getLogger(__name__)


def _prefix(message: Optional[str]) -> str:
    return "" if message is None else message + " "


def assert_update(harness: TestHarness, update: str, message: Optional[str] = None):
    """Validates an update XML string is successful.

    Raises:
        UpdateAssertionError: If the engine rejected the update
        AuthoringError: If the update is not well-formed XML
    """
    try:
        diagnostic = harness.validate_update(update)
    except InvalidXMLError as e:
        raise AuthoringError("Invalid XML") from e

    if diagnostic:
        logger.debug(f"Update rejected: {diagnostic}")
        raise UpdateAssertionError(
            f"{_prefix(message)}update was not successful: {diagnostic}", diagnostic
        )


def assert_query(harness: TestHarness, request: QueryRequest, *tests: str,
                 message: Optional[str] = None):
    """Validates a query matches some XPath test expressions and closes the request.

    Raises:
        QueryAssertionError: On the first test expression that does not hold
        AuthoringError: If an expression is invalid or the query could not run
    """
    try:
        response = harness.query(request)
        failed = harness.validate_xpath(response, *tests)
    except InvalidXPathError as e:
        raise AuthoringError("XPath is invalid") from e
    except Exception as e:
        raise AuthoringError("Exception during query") from e
    finally:
        request.close()

    if failed is not None:
        raise QueryAssertionError(
            f"{_prefix(message)}query failed XPath: {failed} xml response was: {response}",
            failed_test=failed,
            response=response,
        )
