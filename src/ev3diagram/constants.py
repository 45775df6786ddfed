"""Constants for EV3 block-diagram parsing.

Tag names, attribute whitelists, and fixed attribute values of the modeled
schema subset, centralized for easy maintenance.
"""

from typing import FrozenSet

# Fixed attribute values
PROJECT_NAMESPACE = "Project"
ROOT_DIAGRAM_NAME = "__RootDiagram__"
SEQUENCE_WIRE_DATA_TYPE = "NationalInstruments:SourceModel:DataTypes:X3SequenceWireDataType"
SEQUENCE_IN_ID = "SequenceIn"
SEQUENCE_OUT_ID = "SequenceOut"
DIRECTION_INPUT = "Input"
DIRECTION_OUTPUT = "Output"

# Method call targets
MOVE_UNLIMITED_TARGET = "MoveUnlimited.vix"

# Joint kinds and roles in a Wire's Joints attribute
NODE_JOINT_KIND = "N"
SEQUENCE_JOINT_ROLES: FrozenSet[str] = frozenset({SEQUENCE_IN_ID, SEQUENCE_OUT_ID})

# Motor-move configured attributes
PORTS_ATTRIBUTE = "Ports"
STEERING_ATTRIBUTE = "Steering"
SPEED_ATTRIBUTE = "Speed"
INTERRUPTS_ATTRIBUTE_PREFIX = "InterruptsToListenFor_"
PORT_OFFSETS = (2, 5)

# Start tags whose whole subtree is decoration (icons, animation and event metadata)
DECORATIVE_TAGS: FrozenSet[str] = frozenset({
    'Icon',
    'IconPanel',
    'AnimationProperties.Animations',
    'EventProperties.Events',
})

# End tags closing constructs opened at top level
CLOSING_TAGS: FrozenSet[str] = frozenset({
    'SourceFile', 'Namespace', 'VirtualInstrument', 'FrontPanel', 'BlockDiagram',
})

# Empty tags accepted and ignored at top level
IGNORED_EMPTY_TAGS: FrozenSet[str] = frozenset({'FrontPanelCanvas'}) | DECORATIVE_TAGS

# Empty tags allowed to carry a namespace prefix
PREFIXED_EMPTY_TAGS: FrozenSet[str] = frozenset({'FrontPanelCanvas'})

# Attribute whitelists per tag
SOURCE_FILE_ATTRIBUTES: FrozenSet[str] = frozenset({'Version', 'xmlns'})
NAMESPACE_ATTRIBUTES: FrozenSet[str] = frozenset({'Name'})
BLOCK_DIAGRAM_ATTRIBUTES: FrozenSet[str] = frozenset({'Name'})
VIRTUAL_INSTRUMENT_ATTRIBUTES: FrozenSet[str] = frozenset({
    'IsTopLevel', 'IsReentrant', 'Version', 'OverridingModelDefinitionType', 'xmlns',
})
START_BLOCK_ATTRIBUTES: FrozenSet[str] = frozenset({'Id', 'Target', 'Bounds'})
METHOD_CALL_ATTRIBUTES: FrozenSet[str] = frozenset({'Id', 'Bounds', 'Target'})
TERMINAL_ATTRIBUTES: FrozenSet[str] = frozenset({
    'Id', 'Direction', 'DataType', 'Hotspot', 'Bounds', 'Wire',
})
WIRE_ATTRIBUTES: FrozenSet[str] = frozenset({'Id', 'Joints'})
