"""Consistency checks for built documents.

The builder guarantees each tag is well-formed on its own; these checks
look across the finished graph (terminals vs. wires vs. blocks) and report
problems as a list of strings instead of failing the parse.
"""

from typing import List

from .models import Document, StartBlock


class GraphValidationError(Exception):
    """Raised when strict graph validation fails."""

    def __init__(self, message: str, violations: List[str] = None):
        self.violations = violations or []
        super().__init__(message)


class GraphValidator:
    """Cross-reference checks over a Document's blocks and wires."""

    def validate(self, document: Document) -> List[str]:
        """Validate a document.

        Args:
            document: Built document to check

        Returns:
            List of problems (empty if consistent)
        """
        errors = []
        errors.extend(self._check_start_blocks(document))
        errors.extend(self._check_terminal_wires(document))
        errors.extend(self._check_wire_endpoints(document))
        return errors

    def _check_start_blocks(self, document: Document) -> List[str]:
        starts = [block.id for block in document.blocks.values() if isinstance(block, StartBlock)]
        if not starts:
            return ["no StartBlock found"]
        if len(starts) > 1:
            return [f"multiple StartBlocks found: {', '.join(sorted(starts))}"]
        return []

    def _check_terminal_wires(self, document: Document) -> List[str]:
        errors = []
        for block in document.blocks.values():
            for terminal in (block.sequence_in, block.sequence_out):
                if terminal is None or terminal.wire_id is None:
                    continue
                if terminal.wire_id not in document.wires:
                    errors.append(
                        f"blocks[{block.id}].{terminal.direction.value}: unknown wire {terminal.wire_id}"
                    )
        return errors

    def _check_wire_endpoints(self, document: Document) -> List[str]:
        errors = []
        for wire in document.wires.values():
            for role, node_id in (("input", wire.input), ("output", wire.output)):
                if node_id not in document.blocks:
                    errors.append(f"wires[{wire.id}].{role}: unknown block {node_id}")
        return errors


def validate_document(document: Document, strict: bool = False) -> List[str]:
    """Validate a document's graph with optional strict mode.

    Args:
        document: Built document to check
        strict: If True, raises on any problem

    Returns:
        List of problems (empty if consistent)

    Raises:
        GraphValidationError: If strict=True and problems were found
    """
    errors = GraphValidator().validate(document)
    if strict and errors:
        raise GraphValidationError(
            f"Graph validation failed with {len(errors)} errors",
            violations=errors
        )
    return errors
