"""Pure decoders for tag names, attributes, bounds and wire joints.

None of these functions keep state; identical input always yields
identical output.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .constants import NODE_JOINT_KIND, SEQUENCE_IN_ID, SEQUENCE_JOINT_ROLES, SEQUENCE_OUT_ID
from .errors import InvalidEncodingError, MalformedBoundsError, MalformedJointsError
from .events import RawAttribute

_UNSIGNED = re.compile(r'[0-9]+')
_JOINT = re.compile(r'(?P<kind>[A-Za-z]+)\((?P<body>[^()]*)\)')


@dataclass(frozen=True)
class ParsedAttribute:
    """Attribute with UTF-8 validated name, prefix and value."""
    name: str
    prefix: Optional[str]
    value: str


def decode_bytes(raw: bytes, what: str) -> str:
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError as e:
        raise InvalidEncodingError(f"Invalid UTF-8 in {what}: {e}") from e


def decode_name(name: bytes, prefix: Optional[bytes]) -> Tuple[str, Optional[str]]:
    """Decode a tag's local name and optional prefix."""
    decoded = decode_bytes(name, "tag name")
    decoded_prefix = decode_bytes(prefix, f"prefix of tag {decoded}") if prefix is not None else None
    return decoded, decoded_prefix


def decode_attributes(attributes: Iterable[RawAttribute]) -> List[ParsedAttribute]:
    """Decode a tag's raw attributes in order.

    No semantic filtering happens here; callers reject names they don't know.

    Raises:
        InvalidEncodingError: If any name, prefix or value is not valid UTF-8
    """
    parsed = []
    for attr in attributes:
        name = decode_bytes(attr.name, "attribute name")
        prefix = decode_bytes(attr.prefix, f"prefix of attribute {name}") if attr.prefix is not None else None
        value = decode_bytes(attr.value, f"value of attribute {name}")
        parsed.append(ParsedAttribute(name, prefix, value))
    return parsed


def parse_bounds(value: str) -> Tuple[int, int]:
    """Parse ``"x y w h"`` and return ``(w, h)``.

    The origin is not meaningful for the program graph and is dropped.

    Raises:
        MalformedBoundsError: On a field count other than 4 or a non-integer field
    """
    fields = value.split()
    if len(fields) != 4:
        raise MalformedBoundsError(f"Expected 4 bounds, found {len(fields)} in {value!r}")
    for field in fields:
        if not _UNSIGNED.fullmatch(field):
            raise MalformedBoundsError(f"Invalid number {field!r} in bounds {value!r}")
    return int(fields[2]), int(fields[3])


def parse_joints(value: str) -> Tuple[str, str]:
    """Parse a wire's packed joints into ``(input id, output id)``.

    Tokens look like ``N(n1:SequenceOut)``. Only node joints (kind ``N``) take
    part in sequence flow; other kinds are wire bends and are skipped. Exactly
    one node joint must carry ``SequenceIn`` and exactly one ``SequenceOut``.

    Raises:
        MalformedJointsError: On an unparsable token, an unknown or repeated role,
            or a missing role
    """
    roles = {}
    for token in value.split():
        match = _JOINT.fullmatch(token)
        if match is None:
            raise MalformedJointsError(f"Unparsable joint {token!r} in {value!r}")
        if match.group('kind') != NODE_JOINT_KIND:
            continue
        node_id, sep, role = match.group('body').partition(':')
        if not sep or not node_id or not role:
            raise MalformedJointsError(f"Node joint {token!r} is not of the form N(id:role)")
        if role not in SEQUENCE_JOINT_ROLES:
            raise MalformedJointsError(f"Unsupported joint role {role!r} in {token!r}")
        if role in roles:
            raise MalformedJointsError(f"Joint role {role} appears more than once in {value!r}")
        roles[role] = node_id

    for role in (SEQUENCE_IN_ID, SEQUENCE_OUT_ID):
        if role not in roles:
            raise MalformedJointsError(f"Missing {role} joint in {value!r}")
    return roles[SEQUENCE_IN_ID], roles[SEQUENCE_OUT_ID]
