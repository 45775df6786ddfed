"""Tokenize raw program-file bytes into structural XML events.

Built on ``xml.parsers.expat`` and hardened the same way ``defusedxml``
hardens its expat reader: entity declarations and external references are
rejected outright. Whitespace-only character data is dropped and other text
is trimmed, so the builder only ever sees meaningful text.

Input must be UTF-8 (the encoding EV3 exports use); any other declared
encoding is rejected. Self-closing tags are detected by scanning the raw
start tag at the byte offset expat reports.
"""

import logging
from typing import List, Optional, Tuple
from xml.parsers import expat

from defusedxml import DefusedXmlException, EntitiesForbidden, ExternalReferenceForbidden

from .errors import MalformedXmlError
from .events import (
    CData,
    Comment,
    Declaration,
    DocType,
    EmptyTag,
    EndOfStream,
    EndTag,
    Event,
    ProcessingInstruction,
    RawAttribute,
    StartTag,
    Text,
)

logger = logging.getLogger(__name__)

_QUOTES = (ord('"'), ord("'"))
_TAG_CLOSE = ord('>')
_SLASH = ord('/')
_UTF8_NAMES = frozenset({"utf-8", "utf8"})


def _encode(value: Optional[str]) -> Optional[bytes]:
    return value.encode('utf-8') if value is not None else None


def _split_qname(qname: str) -> Tuple[bytes, Optional[bytes]]:
    """Split ``prefix:name`` into (name, prefix)."""
    prefix, sep, local = qname.partition(':')
    if not sep:
        return qname.encode('utf-8'), None
    return local.encode('utf-8'), prefix.encode('utf-8')


class _EventCollector:
    """Collects expat callbacks into an ordered event list."""

    def __init__(self, data: bytes):
        self._data = data
        self.events: List[Event] = []
        self._open: List[Tuple[int, int]] = []  # (event index, byte offset) per open element
        self._cdata: Optional[List[str]] = None

        # Byte offsets below index the raw input, so it must be read as UTF-8
        parser = expat.ParserCreate(encoding="utf-8")
        parser.buffer_text = True
        parser.ordered_attributes = True
        parser.XmlDeclHandler = self._declaration
        parser.StartElementHandler = self._start_element
        parser.EndElementHandler = self._end_element
        parser.CharacterDataHandler = self._characters
        parser.CommentHandler = self._comment
        parser.ProcessingInstructionHandler = self._processing_instruction
        parser.StartCdataSectionHandler = self._start_cdata
        parser.EndCdataSectionHandler = self._end_cdata
        parser.StartDoctypeDeclHandler = self._doctype
        parser.EntityDeclHandler = self._entity_decl
        parser.UnparsedEntityDeclHandler = self._unparsed_entity_decl
        parser.ExternalEntityRefHandler = self._external_entity_ref
        self._parser = parser

    def run(self) -> List[Event]:
        self._parser.Parse(self._data, True)
        self.events.append(EndOfStream())
        return self.events

    def _declaration(self, version, encoding, standalone):
        if encoding is not None and encoding.lower().replace("_", "-") not in _UTF8_NAMES:
            raise MalformedXmlError(f"Unsupported encoding {encoding!r}, expected UTF-8")
        flag = None if standalone == -1 else bool(standalone)
        self.events.append(Declaration(_encode(version), _encode(encoding), flag))

    def _start_element(self, qname, attributes):
        name, prefix = _split_qname(qname)
        raw = []
        for i in range(0, len(attributes), 2):
            attr_name, attr_prefix = _split_qname(attributes[i])
            raw.append(RawAttribute(attr_name, attr_prefix, attributes[i + 1].encode('utf-8')))
        self._open.append((len(self.events), self._parser.CurrentByteIndex))
        self.events.append(StartTag(name, prefix, tuple(raw)))

    def _end_element(self, qname):
        index, offset = self._open.pop()
        if index == len(self.events) - 1 and self._is_self_closing(offset):
            start = self.events[index]
            self.events[index] = EmptyTag(start.name, start.prefix, start.attributes)
            return
        name, prefix = _split_qname(qname)
        self.events.append(EndTag(name, prefix))

    def _is_self_closing(self, offset: int) -> bool:
        """Scan the raw start tag at ``offset`` and check for ``/>``."""
        quote = None
        data = self._data
        for i in range(offset, len(data)):
            byte = data[i]
            if quote is not None:
                if byte == quote:
                    quote = None
            elif byte in _QUOTES:
                quote = byte
            elif byte == _TAG_CLOSE:
                return data[i - 1] == _SLASH
        return False

    def _characters(self, content):
        if self._cdata is not None:
            self._cdata.append(content)
            return
        content = content.strip()
        if content:
            self.events.append(Text(content.encode('utf-8')))

    def _comment(self, content):
        self.events.append(Comment(content.encode('utf-8')))

    def _processing_instruction(self, target, data):
        self.events.append(ProcessingInstruction(target.encode('utf-8'), data.encode('utf-8')))

    def _start_cdata(self):
        self._cdata = []

    def _end_cdata(self):
        content = ''.join(self._cdata or [])
        self._cdata = None
        self.events.append(CData(content.encode('utf-8')))

    def _doctype(self, name, sysid, pubid, has_internal_subset):
        self.events.append(DocType(name.encode('utf-8')))

    def _entity_decl(self, name, is_parameter_entity, value, base, sysid, pubid, notation_name):
        raise EntitiesForbidden(name, value, base, sysid, pubid, notation_name)

    def _unparsed_entity_decl(self, name, base, sysid, pubid, notation_name):
        raise EntitiesForbidden(name, None, base, sysid, pubid, notation_name)

    def _external_entity_ref(self, context, base, sysid, pubid):
        raise ExternalReferenceForbidden(context, base, sysid, pubid)


def tokenize(data: bytes) -> List[Event]:
    """Tokenize a program file into a fully materialized event list.

    Args:
        data: Raw file contents

    Returns:
        Events in document order, terminated by ``EndOfStream``

    Raises:
        MalformedXmlError: If the bytes are not well-formed UTF-8 XML or declare entities
    """
    collector = _EventCollector(data)
    try:
        events = collector.run()
    except expat.ExpatError as e:
        raise MalformedXmlError(f"XML parse error: {e}") from e
    except DefusedXmlException as e:
        raise MalformedXmlError(f"Forbidden XML construct: {e}") from e
    logger.debug(f"Tokenized {len(data)} bytes into {len(events)} events")
    return events
