"""Pydantic models for the parsed block-diagram document.

Blocks are kept in an arena keyed by id; relationships between blocks are
id references (terminal -> wire id -> node id) resolved by lookup on the
Document. All models are frozen once constructed.
"""

from enum import Enum
from types import MappingProxyType
from typing import Annotated, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class Direction(str, Enum):
    """Direction of a sequence terminal."""
    IN = "in"
    OUT = "out"


class Version(BaseModel):
    """SourceFile version number and default namespace."""
    number: str
    namespace: str

    model_config = ConfigDict(frozen=True)


class XmlDeclaration(BaseModel):
    """XML prolog, kept as passthrough for later re-emission."""
    version: str
    encoding: Optional[str] = None
    standalone: Optional[bool] = None

    model_config = ConfigDict(frozen=True)


class SequenceTerminal(BaseModel):
    """Control-flow connection point of a block."""
    direction: Direction
    bounds: Tuple[int, int]  # (width, height)
    wire_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class StartBlock(BaseModel):
    """Program entry point. Has no sequence input."""
    kind: Literal["start"] = "start"
    id: str
    bounds: Tuple[int, int]
    sequence_out: Optional[SequenceTerminal] = None

    model_config = ConfigDict(frozen=True)

    @property
    def sequence_in(self) -> None:
        return None


class MotorMoveBlock(BaseModel):
    """``MoveUnlimited`` method call driving two motors."""
    kind: Literal["motor_move"] = "motor_move"
    id: str
    bounds: Tuple[int, int]
    ports: Tuple[str, str]
    steering: int
    speed: int = Field(ge=0)
    sequence_in: SequenceTerminal
    sequence_out: SequenceTerminal

    model_config = ConfigDict(frozen=True)

    @field_validator("ports")
    @classmethod
    def validate_ports(cls, v):
        if any(len(port) != 1 for port in v):
            raise ValueError(f"ports must be single characters, got: {v}")
        return v


Block = Annotated[Union[StartBlock, MotorMoveBlock], Field(discriminator="kind")]


class Wire(BaseModel):
    """Control-flow edge between two node joints.

    ``input`` is the node carrying the SequenceIn joint, ``output`` the node
    carrying the SequenceOut joint.
    """
    id: str
    input: str
    output: str

    model_config = ConfigDict(frozen=True)


class Document(BaseModel):
    """Complete parsed program file."""
    name: str
    version: Version
    declaration: XmlDeclaration
    blocks: Mapping[str, Block] = Field(default_factory=dict, validate_default=True)
    wires: Mapping[str, Wire] = Field(default_factory=dict, validate_default=True)

    model_config = ConfigDict(frozen=True)

    @field_validator("blocks", "wires", mode="after")
    @classmethod
    def freeze_mapping(cls, v):
        return MappingProxyType(dict(v))

    @field_serializer("blocks", "wires", mode="wrap")
    def serialize_mapping(self, v, handler):
        return handler(dict(v))

    @property
    def start_block(self) -> Optional[StartBlock]:
        """The program's StartBlock, if any."""
        for block in self.blocks.values():
            if isinstance(block, StartBlock):
                return block
        return None

    def wire_for(self, terminal: Optional[SequenceTerminal]) -> Optional[Wire]:
        """Wire attached to ``terminal``, or None."""
        if terminal is None or terminal.wire_id is None:
            return None
        return self.wires.get(terminal.wire_id)

    def next_block(self, block_id: str) -> Optional[Union[StartBlock, MotorMoveBlock]]:
        """Block reached by following ``block_id``'s SequenceOut wire."""
        block = self.blocks.get(block_id)
        if block is None:
            return None
        wire = self.wire_for(block.sequence_out)
        if wire is None:
            return None
        return self.blocks.get(wire.input)

    def execution_order(self) -> List[str]:
        """Block ids from the start block along sequence wires.

        Stops at the end of the chain or on the first revisited block.
        """
        start = self.start_block
        if start is None:
            return []
        order = [start.id]
        seen = {start.id}
        current = self.next_block(start.id)
        while current is not None and current.id not in seen:
            order.append(current.id)
            seen.add(current.id)
            current = self.next_block(current.id)
        return order
