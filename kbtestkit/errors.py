"""
Error taxonomy for the test kit

Two families that must never be confused:
- TestkitError: the test (or its environment) is broken. Reported as an error.
- HarnessAssertionError: the engine under test misbehaved. Reported as a failure.
"""
from typing import Optional


class TestkitError(Exception):
    """Base class for fatal test kit errors"""

    __test__ = False  # not a pytest test class


class AuthoringError(TestkitError):
    """A payload or expression written by the test author is malformed"""


class WorkspaceError(TestkitError):
    """The per-test working directory could not be provisioned"""


class HarnessError(TestkitError):
    """Raised by the engine harness collaborator"""


class HarnessSetupError(HarnessError):
    """Unknown schema/config reference or engine failed to open"""


class HarnessClosedError(HarnessError):
    """Operation attempted on a closed harness"""


class InvalidXMLError(HarnessError):
    """Update message or response body is not well-formed XML"""


class InvalidXPathError(HarnessError):
    """Structural test expression has invalid syntax"""

    def __init__(self, expression: str, reason: str):
        super().__init__(f"{expression}: {reason}")
        self.expression = expression
        self.reason = reason


class HarnessAssertionError(AssertionError):
    """Ordinary assertion failure against the engine under test"""


class UpdateAssertionError(HarnessAssertionError):
    """Engine rejected an update message"""

    def __init__(self, message: str, diagnostic: str):
        super().__init__(message)
        self.diagnostic = diagnostic


class QueryAssertionError(HarnessAssertionError):
    """Query response did not satisfy a structural test"""

    def __init__(self, message: str, failed_test: str, response: Optional[str] = None):
        super().__init__(message)
        self.failed_test = failed_test
        self.response = response
