"""
Query requests and the factory that fills in default parameters

Query requests are structured objects rather than serialized strings: the
harness attaches a searcher to a request while it executes, and the request
must be closed afterwards to release it.
"""
from typing import List, Optional, Sequence, Tuple

from kbtestkit.xml_writer import pairs


class QueryRequest:
    """Ordered query parameters plus the searcher acquired while executing"""

    __test__ = False  # not a pytest test class

    def __init__(self, params: Sequence[Tuple[str, str]]):
        self.params: List[Tuple[str, str]] = [(str(k), str(v)) for k, v in params]
        self.searcher = None
        self.closed = False

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a parameter"""
        for key, value in self.params:
            if key == name:
                return value
        return default

    def get_int(self, name: str, default: int) -> int:
        """Integer parameter.

        Raises:
            ValueError: If the value is not an integer
        """
        value = self.get(name)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Parameter '{name}' must be an integer, got '{value}'") from None

    def close(self):
        """Release the searcher (idempotent)"""
        if self.searcher is not None:
            self.searcher.release()
            self.searcher = None
        self.closed = True

    def __enter__(self) -> 'QueryRequest':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"QueryRequest({self.params!r})"


class LocalRequestFactory:
    """Builds QueryRequests with a default handler, pagination and extra args"""

    def __init__(self, handler: str, start: int = 0, rows: int = 20, args: Sequence[str] = ()):
        self.handler = handler
        self.start = start
        self.rows = rows
        self.args = pairs(args, "default parameter name/value")

    def make_request(self, *q: str) -> QueryRequest:
        """Make a request.

        A single argument is the query string; otherwise arguments are
        alternating parameter name/value pairs. Defaults fill in any
        parameter not given explicitly.

        Raises:
            ValueError: If more than one argument and an odd count is supplied
        """
        if len(q) == 1:
            explicit = [("q", q[0])]
        else:
            explicit = pairs(q, "query parameter name/value")

        given = {name for name, _ in explicit}
        defaults = [("qt", self.handler), ("start", str(self.start)), ("rows", str(self.rows))]
        defaults += self.args
        params = list(explicit) + [(k, v) for k, v in defaults if k not in given]
        return QueryRequest(params)
