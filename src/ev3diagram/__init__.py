"""Strict block-diagram parser for EV3 program files.

This package turns the XML of one ``.ev3p`` program file into a validated,
immutable Document of blocks and wires. Only the schema subset used by
start and motor-move programs is modeled; anything else fails fast.

Basic usage:
    from ev3diagram import build_document

    document = build_document("Program.ev3p", data)
    for block_id in document.execution_order():
        print(document.blocks[block_id].kind)
"""

from .__version__ import __version__, __author__, __description__
from .builder import DocumentBuilder, build_document
from .cursor import EventCursor
from .decoders import (
    ParsedAttribute,
    decode_attributes,
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
    ErrorKind,
    InvalidEncodingError,
    MalformedBoundsError,
    MalformedJointsError,
    MalformedXmlError,
    MissingRequiredFieldError,
    UnexpectedStructureError,
    UnexpectedTextError,
    UnknownAttributeError,
    UnknownMethodTargetError,
    UnknownTagError,
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
from .validation import GraphValidationError, GraphValidator, validate_document

# Public API
__all__ = [
    # Version info
    '__version__',
    '__author__',
    '__description__',

    # Entry points
    'build_document',
    'DocumentBuilder',
    'tokenize',
    'EventCursor',

    # Decoders
    'ParsedAttribute',
    'decode_attributes',
    'decode_name',
    'parse_bounds',
    'parse_joints',

    # Data models
    'Block',
    'Direction',
    'Document',
    'MotorMoveBlock',
    'SequenceTerminal',
    'StartBlock',
    'Version',
    'Wire',
    'XmlDeclaration',

    # Errors
    'DiagramError',
    'ErrorKind',
    'DuplicateDeclarationError',
    'DuplicateVersionError',
    'DuplicateWireIdError',
    'EndOfStreamError',
    'InvalidEncodingError',
    'MalformedBoundsError',
    'MalformedJointsError',
    'MalformedXmlError',
    'MissingRequiredFieldError',
    'UnexpectedStructureError',
    'UnexpectedTextError',
    'UnknownAttributeError',
    'UnknownMethodTargetError',
    'UnknownTagError',

    # Graph validation
    'GraphValidationError',
    'GraphValidator',
    'validate_document',
]
