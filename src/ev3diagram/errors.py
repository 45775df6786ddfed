"""Error taxonomy for block-diagram parsing.

Every failure is fatal for the document being parsed. Each error carries a
kind and a context chain that grows as the error propagates outward through
the sub-parsers, e.g. ``attribute Bounds <- StartBlock n1 <- document Program.ev3p``.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional


class ErrorKind(str, Enum):
    """Flat classification of parse failures."""
    END_OF_STREAM = "EndOfStream"
    INVALID_ENCODING = "InvalidEncoding"
    UNKNOWN_TAG = "UnknownTag"
    UNEXPECTED_TEXT = "UnexpectedText"
    UNEXPECTED_STRUCTURE = "UnexpectedStructure"
    MALFORMED_BOUNDS = "MalformedBounds"
    MALFORMED_JOINTS = "MalformedJoints"
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    UNKNOWN_ATTRIBUTE = "UnknownAttribute"
    UNKNOWN_METHOD_TARGET = "UnknownMethodTarget"
    DUPLICATE_WIRE_ID = "DuplicateWireId"
    DUPLICATE_DECLARATION = "DuplicateDeclaration"
    DUPLICATE_VERSION = "DuplicateVersion"
    MALFORMED_XML = "MalformedXml"


class DiagramError(Exception):
    """Base class for all block-diagram parse failures."""

    kind: ErrorKind

    def __init__(self, message: str, context: Optional[List[str]] = None):
        self.message = message
        self.context: List[str] = list(context or [])
        super().__init__(message)

    def add_context(self, frame: str) -> "DiagramError":
        """Append an outer diagnostic frame and return self."""
        self.context.append(frame)
        return self

    def __str__(self) -> str:
        if not self.context:
            return f"{self.kind.value}: {self.message}"
        chain = " <- ".join(self.context)
        return f"{self.kind.value}: {self.message} (while {chain})"


class EndOfStreamError(DiagramError):
    kind = ErrorKind.END_OF_STREAM


class InvalidEncodingError(DiagramError):
    kind = ErrorKind.INVALID_ENCODING


class UnknownTagError(DiagramError):
    kind = ErrorKind.UNKNOWN_TAG


class UnexpectedTextError(DiagramError):
    kind = ErrorKind.UNEXPECTED_TEXT


class UnexpectedStructureError(DiagramError):
    kind = ErrorKind.UNEXPECTED_STRUCTURE


class MalformedBoundsError(DiagramError):
    kind = ErrorKind.MALFORMED_BOUNDS


class MalformedJointsError(DiagramError):
    kind = ErrorKind.MALFORMED_JOINTS


class MissingRequiredFieldError(DiagramError):
    kind = ErrorKind.MISSING_REQUIRED_FIELD


class UnknownAttributeError(DiagramError):
    kind = ErrorKind.UNKNOWN_ATTRIBUTE


class UnknownMethodTargetError(DiagramError):
    kind = ErrorKind.UNKNOWN_METHOD_TARGET


class DuplicateWireIdError(DiagramError):
    kind = ErrorKind.DUPLICATE_WIRE_ID


class DuplicateDeclarationError(DiagramError):
    kind = ErrorKind.DUPLICATE_DECLARATION


class DuplicateVersionError(DiagramError):
    kind = ErrorKind.DUPLICATE_VERSION


class MalformedXmlError(DiagramError):
    """Raised by the tokenizer when the raw bytes are not well-formed XML."""
    kind = ErrorKind.MALFORMED_XML


@contextmanager
def error_context(frame: str) -> Iterator[None]:
    """Attach ``frame`` to any DiagramError escaping the block."""
    try:
        yield
    except DiagramError as e:
        e.add_context(frame)
        raise
