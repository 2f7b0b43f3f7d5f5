"""
Minimal XML writing helpers for update messages and responses

Two kinds of content are written:
- escaped scalars (attribute values, character data)
- unescaped passthrough of markup that is already serialized (e.g. a <doc>
  fragment wrapped in <add>). Escaping it again would corrupt it.
"""
from typing import Iterable, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

# &, < and > are always escaped by saxutils.escape; CR would otherwise be
# normalized to LF by the parser
_CHARDATA_ENTITIES = {"\r": "&#13;"}

_ATTRIBUTE_ENTITIES = dict(
    _CHARDATA_ENTITIES, **{'"': "&quot;", "'": "&apos;", "\n": "&#10;", "\t": "&#9;"}
)


def escape_chardata(text: str) -> str:
    """Escape text for use as element content"""
    return escape(text, _CHARDATA_ENTITIES)


def escape_attribute(text: str) -> str:
    """Escape text for use inside a double-quoted attribute value"""
    return escape(text, _ATTRIBUTE_ENTITIES)


def pairs(values: Sequence[str], what: str = "name/value") -> Iterable[Tuple[str, str]]:
    """Split alternating name/value strings into pairs.

    Raises:
        ValueError: If an odd number of strings is supplied
    """
    if len(values) % 2 != 0:
        raise ValueError(
            f"Expected alternating {what} pairs, got odd count {len(values)}: {list(values)!r}"
        )
    return list(zip(values[0::2], values[1::2]))


def start_tag(tag: str, attrs: Sequence[str] = (), close: bool = False) -> str:
    """Render an opening tag, attributes given as alternating name/value strings"""
    parts = [f'<{tag}']
    for name, value in pairs(attrs, "attribute name/value"):
        if value is None:
            continue
        parts.append(f' {name}="{escape_attribute(str(value))}"')
    parts.append('/>' if close else '>')
    return ''.join(parts)


def write_xml(tag: str, value: Optional[str], attrs: Sequence[str] = ()) -> str:
    """Render an element whose content is escaped character data"""
    if value is None:
        return start_tag(tag, attrs, close=True)
    return f'{start_tag(tag, attrs)}{escape_chardata(value)}</{tag}>'


def write_unescaped_xml(tag: str, markup: Optional[str], attrs: Sequence[str] = ()) -> str:
    """Render an element whose content is already-serialized markup.

    Attribute values are escaped exactly once; the markup is passed through.
    """
    if markup is None:
        return start_tag(tag, attrs, close=True)
    return f'{start_tag(tag, attrs)}{markup}</{tag}>'
