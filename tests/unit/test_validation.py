"""Unit tests for graph validation of built documents."""

import pytest

from ev3diagram import build_document
from ev3diagram.validation import GraphValidationError, GraphValidator, validate_document


class TestGraphValidator:
    """Test cross-reference checks."""

    def test_consistent_program(self, sample_program):
        """Test a fully wired program has no problems."""
        document = build_document("Program.ev3p", sample_program)
        assert GraphValidator().validate(document) == []

    def test_no_start_block(self, diagram, snippets):
        """Test a program without a start block is reported."""
        document = build_document("Program.ev3p", diagram(snippets.motor_move(wire_in=None)))
        assert validate_document(document) == ["no StartBlock found"]

    def test_multiple_start_blocks(self, diagram, snippets):
        """Test more than one start block is reported."""
        body = snippets.start_block("n1", wire=None) + snippets.start_block("n5", wire=None)
        document = build_document("Program.ev3p", diagram(body))
        assert validate_document(document) == ["multiple StartBlocks found: n1, n5"]

    def test_unknown_wire_reference(self, diagram, snippets):
        """Test a terminal naming a missing wire is reported."""
        document = build_document("Program.ev3p", diagram(snippets.start_block(wire="w9")))
        assert validate_document(document) == ["blocks[n1].out: unknown wire w9"]

    def test_wire_to_unknown_block(self, diagram, snippets):
        """Test wire endpoints naming missing blocks are reported."""
        body = snippets.start_block() + snippets.wire()
        document = build_document("Program.ev3p", diagram(body))
        assert validate_document(document) == ["wires[w1].input: unknown block n2"]


class TestValidateDocument:
    """Test the validate_document entry point."""

    def test_non_strict_returns_problems(self, diagram):
        """Test problems are returned, not raised, by default."""
        document = build_document("Program.ev3p", diagram(""))
        assert validate_document(document) == ["no StartBlock found"]

    def test_strict_raises(self, diagram):
        """Test strict mode raises with every violation attached."""
        document = build_document("Program.ev3p", diagram(""))
        with pytest.raises(GraphValidationError, match="1 errors") as excinfo:
            validate_document(document, strict=True)
        assert excinfo.value.violations == ["no StartBlock found"]

    def test_strict_passes_clean_document(self, sample_program):
        """Test strict mode returns an empty list for a clean document."""
        document = build_document("Program.ev3p", sample_program)
        assert validate_document(document, strict=True) == []
