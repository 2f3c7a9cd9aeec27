import pytest

from boundary_detector import resolve_selection
from data_models import Selection, UnitKind
from errors import EmptySelection

# Test Protocol for the boundary_detector.resolve_selection function

def test_BND_SEL_001_selection_bypasses_classification():
    """
    Tests BND-SEL-001: A selection inside a block is sent as selected, trimmed to its columns.
    """
    lines = ["if (x) {", "  y <- compute(x)", "}"]
    unit = resolve_selection(lines, Selection(start_line=2, end_line=2, start_col=7))
    assert unit.kind == UnitKind.SELECTION
    assert unit.lines == ("compute(x)",)

def test_BND_SEL_002_empty_selection():
    """
    Tests BND-SEL-002: Zero-length and reversed selections raise EmptySelection.
    """
    with pytest.raises(EmptySelection):
        resolve_selection(["abc"], Selection(start_line=1, end_line=1, start_col=0, end_col=0))
    with pytest.raises(EmptySelection):
        resolve_selection(["a", "b"], Selection(start_line=2, end_line=1))
