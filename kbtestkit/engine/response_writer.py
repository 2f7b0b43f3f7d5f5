"""
XML response writer (format version 2.2)

    <response>
      <lst name="responseHeader">
        <int name="status">0</int><int name="QTime">3</int>
        <lst name="params">...</lst>
      </lst>
      <result name="response" numFound="1" start="0" maxScore="1.0">
        <doc><str name="id">42</str><arr name="cat"><str>a</str><str>b</str></arr></doc>
      </result>
    </response>
"""
from typing import List, Optional, Sequence, Tuple

from kbtestkit.engine.searcher import ScoredDocument, SearchResult
from kbtestkit.xml_writer import start_tag, write_xml

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


class FieldList:
    """Which fields a response includes (the fl parameter)"""

    def __init__(self, fl: Optional[str] = None):
        names = [n for n in (fl or "*").replace(',', ' ').split() if n]
        self.all_fields = not names or '*' in names
        self.score = 'score' in names
        self.names = [n for n in names if n not in ('*', 'score')]

    def wants(self, name: str) -> bool:
        """Whether a stored field is returned"""
        return self.all_fields or name in self.names


class XMLResponseWriter:
    """Serializes search results and errors"""

    def write_results(self, result: SearchResult, params: Sequence[Tuple[str, str]],
                      field_list: FieldList, qtime: int) -> str:
        """Serialize a successful search"""
        parts = [XML_DECLARATION, '<response>\n']
        parts.append(self._header(0, qtime, params))

        attrs = ['name', 'response', 'numFound', str(result.num_found), 'start', str(result.start)]
        if field_list.score and result.max_score is not None:
            attrs += ['maxScore', _format_float(result.max_score)]
        parts.append(_open('result', attrs))
        for scored in result.docs:
            parts.append(self._doc(scored, field_list))
        parts.append('</result>\n</response>\n')
        return ''.join(parts)

    def write_error(self, code: int, message: str,
                    params: Sequence[Tuple[str, str]], qtime: int = 0) -> str:
        """Serialize a request error"""
        return ''.join([
            XML_DECLARATION, '<response>\n',
            self._header(code, qtime, params),
            '<lst name="error">',
            write_xml('str', message, ['name', 'msg']),
            write_xml('int', str(code), ['name', 'code']),
            '</lst>\n</response>\n',
        ])

    def _header(self, status: int, qtime: int, params: Sequence[Tuple[str, str]]) -> str:
        """responseHeader section, echoing request params"""
        parts = ['<lst name="responseHeader">']
        parts.append(write_xml('int', str(status), ['name', 'status']))
        parts.append(write_xml('int', str(qtime), ['name', 'QTime']))
        parts.append('<lst name="params">')
        for name, value in params:
            parts.append(write_xml('str', value, ['name', name]))
        parts.append('</lst></lst>\n')
        return ''.join(parts)

    def _doc(self, scored: ScoredDocument, field_list: FieldList) -> str:
        """One <doc>, multi-valued fields rendered as <arr>"""
        document = scored.document
        parts = ['<doc>']
        for name in document.field_names():
            if not field_list.wants(name):
                continue
            values = document.values(name)
            if len(values) == 1:
                parts.append(write_xml('str', values[0], ['name', name]))
            else:
                parts.append(_open('arr', ['name', name], newline=False))
                parts.extend(write_xml('str', value) for value in values)
                parts.append('</arr>')
        if field_list.score:
            parts.append(write_xml('float', _format_float(scored.score), ['name', 'score']))
        parts.append('</doc>\n')
        return ''.join(parts)


def _open(tag: str, attrs: List[str], newline: bool = True) -> str:
    """Opening tag with escaped attributes"""
    return start_tag(tag, attrs) + ('\n' if newline else '')


def _format_float(value: float) -> str:
    """Compact float rendering"""
    return repr(round(value, 6))
