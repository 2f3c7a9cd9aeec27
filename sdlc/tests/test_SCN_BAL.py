import pytest

from delimiter_scanner import scan_balance
from errors import NoMatchingDelimiter, NoOpenerFound

# Test Protocol for the delimiter_scanner.scan_balance function

def test_SCN_BAL_001_nested_blocks():
    """
    Tests SCN-BAL-001: Returns the closing line of a block nested three deep.
    """
    lines = ["f <- function() {", "  for (i in x) {", "    if (i) {", "      i", "    }", "  }", "}", "f()"]
    assert scan_balance(lines, 0) == 6

def test_SCN_BAL_002_else_keeps_block_open():
    """
    Tests SCN-BAL-002: A '} else {' line does not end the block.
    """
    lines = ["if (a) {", "  1", "} else {", "  2", "}"]
    assert scan_balance(lines, 0) == 4

def test_SCN_BAL_003_unclosed_block():
    """
    Tests SCN-BAL-003: An unclosed block raises NoMatchingDelimiter.
    """
    with pytest.raises(NoMatchingDelimiter):
        scan_balance(["while (TRUE) {", "  step()"], 0)

def test_SCN_BAL_004_no_opener_in_window():
    """
    Tests SCN-BAL-004: A head with no brace in the look-ahead window raises NoOpenerFound.
    """
    with pytest.raises(NoOpenerFound):
        scan_balance(["repeat"] + [""] * 3, 0, lookahead=3)
