"""Pytest configuration and fixtures for ev3parse tests."""

import zipfile
from pathlib import Path
from types import SimpleNamespace

import pytest

SEQUENCE_TYPE = "NationalInstruments:SourceModel:DataTypes:X3SequenceWireDataType"

HEADER = r"""<?xml version="1.0" encoding="utf-8"?>
<SourceFile Version="1.0.2.10" xmlns="http://www.ni.com/SourceModel.xsd">
    <Namespace Name="Project">
        <VirtualInstrument IsTopLevel="false" IsReentrant="false" Version="1.0.2.0" OverridingModelDefinitionType="X3VIDocument" xmlns="http://www.ni.com/VirtualInstrument.xsd">
            <FrontPanel>
                <fpruntime:FrontPanelCanvas xmlns:fpruntime="clr-namespace:NationalInstruments.LabVIEW.FrontPanelRuntime" Width="640" Height="480" />
            </FrontPanel>
            <BlockDiagram Name="__RootDiagram__">
"""

FOOTER = """            </BlockDiagram>
        </VirtualInstrument>
    </Namespace>
</SourceFile>
"""

DEFAULT_METADATA = {
    "___ProjectTitle": "Line follower",
    "___ProjectDescription": "Drives forward",
    "___CopyrightYear": "2024",
    "___ProjectThumbnail": b"\x89PNG\r\n",
    "Activity.x3a": "<Activity />",
    "ActivityAssets.laz": b"PK\x03\x04",
    "Project.lvprojx": "<SourceFile />",
}


def wrap(body: str) -> bytes:
    return (HEADER + body + FOOTER).encode("utf-8")


def terminal(terminal_id: str, direction: str, wire: str | None = None, bounds: str = "0 33 18 18") -> str:
    wire_attr = f' Wire="{wire}"' if wire else ""
    return (
        f'<Terminal Id="{terminal_id}" Direction="{direction}" DataType="{SEQUENCE_TYPE}" '
        f'Hotspot="0 0.5" Bounds="{bounds}"{wire_attr} />\n'
    )


def start_block(block_id: str = "n1", wire: str | None = "w1", bounds: str = "0 0 70 91") -> str:
    return (
        f'<StartBlock Id="{block_id}" Bounds="{bounds}" Target="X3\\.Lib:StartBlockTest">\n'
        '<ConfigurableMethodTerminal>\n'
        '<Terminal Id="Result" Direction="Output" DataType="Boolean" Hotspot="0.5 1" Bounds="0 0 0 0" />\n'
        '</ConfigurableMethodTerminal>\n'
        + terminal("SequenceOut", "Output", wire, "52 33 18 18")
        + '</StartBlock>\n'
    )


def method_attribute(name: str, value: str) -> str:
    return (
        f'<ConfigurableMethodTerminal ConfiguredValue="{value}">\n'
        f'<Terminal Id="{name}" Direction="Input" DataType="Int32" Hotspot="0 0" Bounds="0 0 0 0" />\n'
        '</ConfigurableMethodTerminal>\n'
    )


def motor_move(
    block_id: str = "n2",
    ports: str | None = "xxAxxB",
    steering: str | None = "-50",
    speed: str | None = "75",
    target: str = "MoveUnlimited\\.vix",
    wire_in: str | None = "w1",
    wire_out: str | None = None,
    extra: str = "",
) -> str:
    attributes = ""
    if ports is not None:
        attributes += method_attribute("Ports", ports)
    if steering is not None:
        attributes += method_attribute("Steering", steering)
    if speed is not None:
        attributes += method_attribute("Speed", speed)
    attributes += method_attribute("InterruptsToListenFor_16B03592_CD9F_4A1F_8F26_89D6D3C1A0F0", "0")
    return (
        f'<ConfigurableMethodCall Id="{block_id}" Bounds="105 0 148 127" Target="{target}">\n'
        + attributes
        + extra
        + terminal("SequenceIn", "Input", wire_in)
        + terminal("SequenceOut", "Output", wire_out, "130 33 18 18")
        + '</ConfigurableMethodCall>\n'
    )


def wire(wire_id: str = "w1", joints: str = "N(n1:SequenceOut) N(n2:SequenceIn)") -> str:
    return f'<Wire Id="{wire_id}" Joints="{joints}" />\n'


@pytest.fixture
def diagram():
    """Factory wrapping a BlockDiagram body into a complete program file."""
    return wrap


@pytest.fixture
def snippets():
    """Namespace of XML snippet builders."""
    return SimpleNamespace(
        start_block=start_block,
        motor_move=motor_move,
        method_attribute=method_attribute,
        terminal=terminal,
        wire=wire,
    )


@pytest.fixture
def sample_program():
    """Start block wired to one motor-move block."""
    return wrap(start_block() + motor_move() + wire())


@pytest.fixture
def make_archive(tmp_path):
    """Factory writing an .ev3 zip archive with metadata and program members."""
    def _make(programs: dict[str, bytes], metadata: dict | None = None, drop: tuple = ()) -> Path:
        path = tmp_path / "project.ev3"
        members = {**DEFAULT_METADATA, **(metadata or {})}
        with zipfile.ZipFile(path, "w") as archive:
            for name, content in members.items():
                if name not in drop:
                    archive.writestr(name, content)
            for name, content in programs.items():
                archive.writestr(name, content)
        return path

    return _make
