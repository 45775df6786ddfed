"""Core block-diagram document builder.

This module provides the DocumentBuilder class, a strict recursive-descent
interpreter over the tokenized event stream of one EV3 program file. Every
tag and attribute is checked against an explicit whitelist and the first
deviation aborts the parse; unknown structure is never silently skipped.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from .constants import (
    BLOCK_DIAGRAM_ATTRIBUTES,
    CLOSING_TAGS,
    DECORATIVE_TAGS,
    DIRECTION_INPUT,
    DIRECTION_OUTPUT,
    IGNORED_EMPTY_TAGS,
    INTERRUPTS_ATTRIBUTE_PREFIX,
    METHOD_CALL_ATTRIBUTES,
    MOVE_UNLIMITED_TARGET,
    NAMESPACE_ATTRIBUTES,
    PORT_OFFSETS,
    PORTS_ATTRIBUTE,
    PREFIXED_EMPTY_TAGS,
    PROJECT_NAMESPACE,
    ROOT_DIAGRAM_NAME,
    SEQUENCE_IN_ID,
    SEQUENCE_OUT_ID,
    SEQUENCE_WIRE_DATA_TYPE,
    SOURCE_FILE_ATTRIBUTES,
    SPEED_ATTRIBUTE,
    START_BLOCK_ATTRIBUTES,
    STEERING_ATTRIBUTE,
    TERMINAL_ATTRIBUTES,
    VIRTUAL_INSTRUMENT_ATTRIBUTES,
    WIRE_ATTRIBUTES,
)
from .cursor import EventCursor
from .decoders import (
    ParsedAttribute,
    decode_attributes,
    decode_bytes,
    decode_name,
    parse_bounds,
    parse_joints,
)
from .errors import (
    DiagramError,
    DuplicateDeclarationError,
    DuplicateVersionError,
    DuplicateWireIdError,
    EndOfStreamError,
    MissingRequiredFieldError,
    UnexpectedStructureError,
    UnexpectedTextError,
    UnknownAttributeError,
    UnknownMethodTargetError,
    UnknownTagError,
    error_context,
)
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
    StartTag,
    Text,
)
from .models import (
    Block,
    Direction,
    Document,
    MotorMoveBlock,
    SequenceTerminal,
    StartBlock,
    Version,
    Wire,
    XmlDeclaration,
)
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

_SIGNED = re.compile(r'-?[0-9]+')
_UNSIGNED = re.compile(r'[0-9]+')


@dataclass(frozen=True)
class MethodAttribute:
    """One configured value of a method call, e.g. ``Speed = 75``."""
    id: str
    value: str


def _describe(event: Event) -> str:
    name = getattr(event, 'name', None)
    if isinstance(name, bytes):
        return f"{type(event).__name__}({name.decode('utf-8', errors='replace')})"
    return type(event).__name__


def _parse_int(value: str, signed: bool) -> int:
    pattern = _SIGNED if signed else _UNSIGNED
    if not pattern.fullmatch(value):
        kind = "signed" if signed else "unsigned"
        raise UnexpectedStructureError(f"Expected {kind} integer, found {value!r}")
    return int(value)


def _parse_ports(value: str) -> Tuple[str, str]:
    """Pick the two single-character port codes at their fixed offsets."""
    if len(value) <= max(PORT_OFFSETS):
        raise UnexpectedStructureError(f"Ports value {value!r} is too short")
    first, second = PORT_OFFSETS
    return value[first], value[second]


class DocumentBuilder:
    """Builds a Document from the event stream of one program file.

    Events are consumed strictly in document order. Top-level tags are
    dispatched by name; nested constructs (StartBlock, ConfigurableMethodCall)
    are consumed whole by dedicated sub-parsers using bounded lookahead.
    """

    def __init__(self, name: str, events: Sequence[Event], ignore_unknown: bool = False):
        """Initialize builder over a materialized event list.

        Args:
            name: Archive member name of the program file
            events: Tokenized events, terminated by EndOfStream
            ignore_unknown: Skip unknown tags with a warning instead of failing
        """
        self.name = name
        self.ignore_unknown = ignore_unknown
        self._cursor = EventCursor(events)
        self._version: Optional[Version] = None
        self._declaration: Optional[XmlDeclaration] = None
        self._blocks: Dict[str, Block] = {}
        self._wires: Dict[str, Wire] = {}
        self._document: Optional[Document] = None
        self._error: Optional[DiagramError] = None

        self._start_handlers: Dict[str, Callable[[List[ParsedAttribute]], None]] = {
            'SourceFile': self._source_file,
            'Namespace': self._namespace,
            'VirtualInstrument': self._virtual_instrument,
            'FrontPanel': self._front_panel,
            'BlockDiagram': self._block_diagram,
            'StartBlock': self._start_block,
            'ConfigurableMethodCall': self._method_call,
        }
        self._method_decoders: Dict[str, Callable[[str, Tuple[int, int]], Block]] = {
            MOVE_UNLIMITED_TARGET: self._motor_move,
        }

    @classmethod
    def from_bytes(cls, name: str, data: bytes, ignore_unknown: bool = False) -> "DocumentBuilder":
        """Tokenize ``data`` and create a builder over the resulting events."""
        with error_context(f"tokenizing {name}"):
            events = tokenize(data)
        return cls(name, events, ignore_unknown=ignore_unknown)

    def build(self) -> Document:
        """Consume the whole event stream and return the finished Document.

        Raises:
            DiagramError: On the first validation failure; no partial
                Document is produced
        """
        if self._document is not None:
            return self._document
        # The cursor cannot rewind, so a failed parse stays failed
        if self._error is not None:
            raise self._error

        try:
            with error_context(f"document {self.name}"):
                self._parse()
                if self._version is None:
                    raise MissingRequiredFieldError("No SourceFile version found")
                if self._declaration is None:
                    raise MissingRequiredFieldError("No XML declaration found")
        except DiagramError as e:
            self._error = e
            raise

        self._document = Document(
            name=self.name,
            version=self._version,
            declaration=self._declaration,
            blocks=dict(self._blocks),
            wires=dict(self._wires),
        )
        logger.debug(
            f"Built {self.name}: {len(self._blocks)} blocks, {len(self._wires)} wires"
        )
        return self._document

    # Top-level dispatch

    def _parse(self) -> None:
        while True:
            event = self._cursor.next()
            if isinstance(event, StartTag):
                self._start_tag(event)
            elif isinstance(event, EndTag):
                self._end_tag(event)
            elif isinstance(event, EmptyTag):
                self._empty_tag(event)
            elif isinstance(event, Text):
                text = event.content.decode('utf-8', errors='replace')
                raise UnexpectedTextError(f"Unexpected text: {text!r}")
            elif isinstance(event, Comment):
                logger.debug("Ignoring comment")
            elif isinstance(event, Declaration):
                self._set_declaration(event)
            elif isinstance(event, CData):
                raise UnexpectedStructureError("Unexpected CData section")
            elif isinstance(event, ProcessingInstruction):
                raise UnexpectedStructureError("Unexpected processing instruction")
            elif isinstance(event, DocType):
                raise UnexpectedStructureError("Unexpected DocType declaration")
            elif isinstance(event, EndOfStream):
                break
            else:
                raise UnexpectedStructureError(f"Unknown event {event!r}")

    def _start_tag(self, event: StartTag) -> None:
        name, prefix = decode_name(event.name, event.prefix)
        with error_context(f"{name} start tag"):
            attributes = decode_attributes(event.attributes)
            if name in DECORATIVE_TAGS:
                self._reject_prefix(name, prefix)
                logger.debug(f"Skipping decorative {name}")
                self._skip_subtree(name)
                return
            handler = self._start_handlers.get(name)
            if handler is None:
                if self.ignore_unknown:
                    logger.warning(f"Skipping unknown start tag {name} in {self.name}")
                    self._skip_subtree(name)
                    return
                raise UnknownTagError(f"{name} start tag not implemented")
            self._reject_prefix(name, prefix)
            handler(attributes)

    def _end_tag(self, event: EndTag) -> None:
        name, prefix = decode_name(event.name, event.prefix)
        if name in CLOSING_TAGS:
            self._reject_prefix(name, prefix)
            return
        if self.ignore_unknown:
            logger.warning(f"Skipping unknown end tag {name} in {self.name}")
            return
        raise UnknownTagError(f"{name} end tag not implemented")

    def _empty_tag(self, event: EmptyTag) -> None:
        name, prefix = decode_name(event.name, event.prefix)
        with error_context(f"{name} empty tag"):
            attributes = decode_attributes(event.attributes)
            if name == 'Wire':
                self._reject_prefix(name, prefix)
                self._wire(attributes)
            elif name in IGNORED_EMPTY_TAGS:
                if name not in PREFIXED_EMPTY_TAGS:
                    self._reject_prefix(name, prefix)
            elif self.ignore_unknown:
                logger.warning(f"Skipping unknown empty tag {name} in {self.name}")
            else:
                raise UnknownTagError(f"{name} empty tag not implemented")

    def _skip_subtree(self, name: str) -> None:
        """Consume events up to and including the close of ``name``."""
        depth = 1
        while depth:
            event = self._cursor.next()
            if isinstance(event, EndOfStream):
                raise EndOfStreamError(f"Stream ended inside {name}")
            if isinstance(event, StartTag):
                depth += 1
            elif isinstance(event, EndTag):
                depth -= 1
                if depth == 0:
                    closing, _ = decode_name(event.name, event.prefix)
                    if closing != name:
                        raise UnexpectedStructureError(
                            f"Unexpected end tag `{closing}` closing `{name}`"
                        )

    # Top-level handlers

    def _source_file(self, attributes: List[ParsedAttribute]) -> None:
        values = self._collect('SourceFile', attributes, SOURCE_FILE_ATTRIBUTES)
        version = Version(
            number=self._require(values, 'Version', 'SourceFile'),
            namespace=self._require(values, 'xmlns', 'SourceFile'),
        )
        if self._version is not None:
            raise DuplicateVersionError(
                f"Setting version twice. Old {self._version!r}, new {version!r}"
            )
        self._version = version

    def _namespace(self, attributes: List[ParsedAttribute]) -> None:
        values = self._collect('Namespace', attributes, NAMESPACE_ATTRIBUTES)
        namespace = self._require(values, 'Name', 'Namespace')
        if namespace != PROJECT_NAMESPACE:
            raise UnexpectedStructureError(f"Unsupported namespace {namespace} that is not project")

    def _virtual_instrument(self, attributes: List[ParsedAttribute]) -> None:
        self._collect('VirtualInstrument', attributes, VIRTUAL_INSTRUMENT_ATTRIBUTES)

    def _front_panel(self, attributes: List[ParsedAttribute]) -> None:
        self._collect('FrontPanel', attributes, frozenset())

    def _block_diagram(self, attributes: List[ParsedAttribute]) -> None:
        values = self._collect('BlockDiagram', attributes, BLOCK_DIAGRAM_ATTRIBUTES)
        diagram = self._require(values, 'Name', 'BlockDiagram')
        if diagram != ROOT_DIAGRAM_NAME:
            raise UnexpectedStructureError(f"Unknown block diagram name value {diagram}")

    def _set_declaration(self, event: Declaration) -> None:
        declaration = XmlDeclaration(
            version=decode_bytes(event.version, "declaration version"),
            encoding=decode_bytes(event.encoding, "declaration encoding") if event.encoding is not None else None,
            standalone=event.standalone,
        )
        if self._declaration is not None:
            raise DuplicateDeclarationError(
                f"Setting declaration twice. Old {self._declaration!r}, new {declaration!r}"
            )
        self._declaration = declaration

    def _wire(self, attributes: List[ParsedAttribute]) -> None:
        values = self._collect('Wire', attributes, WIRE_ATTRIBUTES)
        wire_id = self._require(values, 'Id', 'Wire')
        with error_context(f"Wire {wire_id}"):
            joints = self._require(values, 'Joints', 'Wire')
            with error_context("attribute Joints"):
                input_id, output_id = parse_joints(joints)
            if wire_id in self._wires:
                raise DuplicateWireIdError(f"Wire id `{wire_id}` is defined more than once")
        self._wires[wire_id] = Wire(id=wire_id, input=input_id, output=output_id)
        logger.debug(f"Wire {wire_id}: {output_id} -> {input_id}")

    # Block sub-parsers

    def _start_block(self, attributes: List[ParsedAttribute]) -> None:
        values = self._collect('StartBlock', attributes, START_BLOCK_ATTRIBUTES)
        block_id = self._require(values, 'Id', 'StartBlock')
        with error_context(f"StartBlock {block_id}"):
            # Target is ignored, the tag already says this is a start block
            bounds = self._bounds(values, 'StartBlock')

            inner = self._expect_start('ConfigurableMethodTerminal')
            if inner:
                raise UnexpectedStructureError(
                    "Unexpected attributes on ConfigurableMethodTerminal in StartBlock"
                )
            # Inner terminal is tool-generated and always the same
            self._expect_empty(None)
            self._expect_end('ConfigurableMethodTerminal')

            terminal = self._expect_empty('Terminal')
            sequence_out = self._sequence_terminal(terminal, SEQUENCE_OUT_ID, DIRECTION_OUTPUT)
            self._expect_end('StartBlock')

        self._insert_block(StartBlock(id=block_id, bounds=bounds, sequence_out=sequence_out))

    def _method_call(self, attributes: List[ParsedAttribute]) -> None:
        values = self._collect('ConfigurableMethodCall', attributes, METHOD_CALL_ATTRIBUTES)
        call_id = self._require(values, 'Id', 'ConfigurableMethodCall')
        with error_context(f"ConfigurableMethodCall {call_id}"):
            bounds = self._bounds(values, 'ConfigurableMethodCall')
            # Targets may escape dots, as in `MoveUnlimited\.vix`
            target = self._require(values, 'Target', 'ConfigurableMethodCall').replace('\\.', '.')
            decoder = self._method_decoders.get(target)
            if decoder is None:
                raise UnknownMethodTargetError(f"Unsupported method target `{target}`")
            block = decoder(call_id, bounds)
            self._expect_end('ConfigurableMethodCall')
        self._insert_block(block)

    def _motor_move(self, call_id: str, bounds: Tuple[int, int]) -> MotorMoveBlock:
        ports = None
        steering = None
        speed = None
        while True:
            attribute = self._method_attribute()
            if attribute is None:
                break
            with error_context(f"attribute {attribute.id}"):
                if attribute.id == PORTS_ATTRIBUTE:
                    ports = _parse_ports(attribute.value)
                elif attribute.id == STEERING_ATTRIBUTE:
                    steering = _parse_int(attribute.value, signed=True)
                elif attribute.id == SPEED_ATTRIBUTE:
                    speed = _parse_int(attribute.value, signed=False)
                elif attribute.id.startswith(INTERRUPTS_ATTRIBUTE_PREFIX):
                    pass  # constant across exports
                else:
                    raise UnknownAttributeError(f"Unknown MoveUnlimited attribute `{attribute.id}`")

        if ports is None:
            raise MissingRequiredFieldError("Missing Ports for MoveUnlimited")
        if steering is None:
            raise MissingRequiredFieldError("Missing Steering for MoveUnlimited")
        if speed is None:
            raise MissingRequiredFieldError("Missing Speed for MoveUnlimited")

        sequence_in, sequence_out = self._terminal_pair()
        return MotorMoveBlock(
            id=call_id,
            bounds=bounds,
            ports=ports,
            steering=steering,
            speed=speed,
            sequence_in=sequence_in,
            sequence_out=sequence_out,
        )

    def _method_attribute(self) -> Optional[MethodAttribute]:
        """Consume one configured attribute, or return None when the list ends."""
        if not isinstance(self._cursor.peek(), StartTag):
            return None

        attributes = self._expect_start('ConfigurableMethodTerminal')
        if (len(attributes) != 1 or attributes[0].name != 'ConfiguredValue'
                or attributes[0].prefix is not None):
            raise UnexpectedStructureError(
                "ConfigurableMethodTerminal must carry exactly one ConfiguredValue attribute"
            )
        value = attributes[0].value

        terminal = self._collect('Terminal', self._expect_empty('Terminal'), TERMINAL_ATTRIBUTES)
        attribute_id = self._require(terminal, 'Id', 'Terminal')
        self._expect_end('ConfigurableMethodTerminal')
        return MethodAttribute(attribute_id, value)

    def _terminal_pair(self) -> Tuple[SequenceTerminal, SequenceTerminal]:
        sequence_in = self._sequence_terminal(
            self._expect_empty('Terminal'), SEQUENCE_IN_ID, DIRECTION_INPUT
        )
        sequence_out = self._sequence_terminal(
            self._expect_empty('Terminal'), SEQUENCE_OUT_ID, DIRECTION_OUTPUT
        )
        return sequence_in, sequence_out

    def _sequence_terminal(
        self, attributes: List[ParsedAttribute], terminal_id: str, direction: str
    ) -> SequenceTerminal:
        with error_context(f"{terminal_id} terminal"):
            values = self._collect('Terminal', attributes, TERMINAL_ATTRIBUTES)
            actual_id = self._require(values, 'Id', 'Terminal')
            if actual_id != terminal_id:
                raise UnexpectedStructureError(f"Unexpected Id `{actual_id}`, expected `{terminal_id}`")
            actual_direction = self._require(values, 'Direction', 'Terminal')
            if actual_direction != direction:
                raise UnexpectedStructureError(
                    f"Unexpected Direction `{actual_direction}`, expected `{direction}`"
                )
            data_type = self._require(values, 'DataType', 'Terminal')
            if data_type != SEQUENCE_WIRE_DATA_TYPE:
                raise UnexpectedStructureError(f"Unexpected DataType `{data_type}`")
            # Hotspot is accepted and discarded
            bounds = self._bounds(values, 'Terminal')
        return SequenceTerminal(
            direction=Direction.IN if direction == DIRECTION_INPUT else Direction.OUT,
            bounds=bounds,
            wire_id=values.get('Wire'),
        )

    def _insert_block(self, block: Block) -> None:
        if block.id in self._blocks:
            # Later definition wins; duplicate wires, by contrast, are fatal
            logger.debug(f"Block id {block.id} redefined, replacing earlier block")
        self._blocks[block.id] = block
        logger.debug(f"Block {block.id}: {block.kind}")

    # Structural helpers

    def _next_of(self, kind: Type, what: str):
        event = self._cursor.next()
        if isinstance(event, EndOfStream):
            raise EndOfStreamError(f"Stream ended, expected {what}")
        if not isinstance(event, kind):
            raise UnexpectedStructureError(f"Expected {what}, found {_describe(event)}")
        return event

    def _expect_start(self, tag: str) -> List[ParsedAttribute]:
        event = self._next_of(StartTag, f"<{tag}> start tag")
        self._check_name(event, tag)
        return decode_attributes(event.attributes)

    def _expect_empty(self, tag: Optional[str]) -> List[ParsedAttribute]:
        """Consume an empty tag; ``tag=None`` accepts any name."""
        event = self._next_of(EmptyTag, f"<{tag or 'any'}/> empty tag")
        if tag is not None:
            self._check_name(event, tag)
        return decode_attributes(event.attributes)

    def _expect_end(self, tag: str) -> None:
        event = self._next_of(EndTag, f"</{tag}> end tag")
        self._check_name(event, tag)

    def _check_name(self, event, tag: str) -> None:
        name, prefix = decode_name(event.name, event.prefix)
        if name != tag:
            raise UnexpectedStructureError(f"Unexpected tag name `{name}`, expected `{tag}`")
        self._reject_prefix(name, prefix)

    @staticmethod
    def _reject_prefix(name: str, prefix: Optional[str]) -> None:
        if prefix is not None:
            raise UnexpectedStructureError(f"Unexpected prefix `{prefix}` on `{name}` tag")

    @staticmethod
    def _collect(tag: str, attributes: Iterable[ParsedAttribute], allowed) -> Dict[str, str]:
        """Map attribute names to values, rejecting anything not in ``allowed``."""
        values = {}
        for attr in attributes:
            if attr.prefix is not None or attr.name not in allowed:
                qualified = f"{attr.prefix}:{attr.name}" if attr.prefix else attr.name
                raise UnknownAttributeError(f"Unknown {tag} attribute: {qualified}")
            values[attr.name] = attr.value
        return values

    @staticmethod
    def _require(values: Dict[str, str], key: str, tag: str) -> str:
        if key not in values:
            raise MissingRequiredFieldError(f"Missing {key} for {tag}")
        return values[key]

    @staticmethod
    def _bounds(values: Dict[str, str], tag: str) -> Tuple[int, int]:
        raw = DocumentBuilder._require(values, 'Bounds', tag)
        with error_context("attribute Bounds"):
            return parse_bounds(raw)


def build_document(name: str, data: bytes, ignore_unknown: bool = False) -> Document:
    """Parse one program file's raw bytes into a Document.

    Args:
        name: Archive member name of the program file
        data: Raw file contents
        ignore_unknown: Explicit opt-in to skip unknown tags with a warning

    Returns:
        Finished, immutable Document

    Raises:
        DiagramError: On the first validation failure
    """
    return DocumentBuilder.from_bytes(name, data, ignore_unknown=ignore_unknown).build()
