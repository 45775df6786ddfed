"""Structural XML events consumed by the document builder.

Events are produced by the tokenizer and fully materialized before the
builder runs. Names, prefixes and values stay raw bytes; the builder
validates them as UTF-8 itself.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class RawAttribute:
    """Undecoded attribute of a start or empty tag."""
    name: bytes
    prefix: Optional[bytes]
    value: bytes


@dataclass(frozen=True)
class StartTag:
    name: bytes
    prefix: Optional[bytes] = None
    attributes: Tuple[RawAttribute, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EndTag:
    name: bytes
    prefix: Optional[bytes] = None


@dataclass(frozen=True)
class EmptyTag:
    """Self-closing tag, e.g. ``<Wire Id="w1" ... />``."""
    name: bytes
    prefix: Optional[bytes] = None
    attributes: Tuple[RawAttribute, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Text:
    content: bytes


@dataclass(frozen=True)
class Comment:
    content: bytes = b""


@dataclass(frozen=True)
class Declaration:
    """XML prolog ``<?xml version=... encoding=... standalone=...?>``."""
    version: bytes
    encoding: Optional[bytes] = None
    standalone: Optional[bool] = None


@dataclass(frozen=True)
class ProcessingInstruction:
    target: bytes
    data: bytes = b""


@dataclass(frozen=True)
class CData:
    content: bytes


@dataclass(frozen=True)
class DocType:
    name: bytes


@dataclass(frozen=True)
class EndOfStream:
    pass


Event = Union[
    StartTag,
    EndTag,
    EmptyTag,
    Text,
    Comment,
    Declaration,
    ProcessingInstruction,
    CData,
    DocType,
    EndOfStream,
]
