import pytest

from delimiter_scanner import find_opener, net_depth, scan_balance
from errors import NoMatchingDelimiter, NoOpenerFound


def test_net_depth_counts_each_delimiter():
    assert net_depth("if (x) { y <- list(a = {1}) ") == 1
    assert net_depth("} else {") == 0
    assert net_depth("))", "(", ")") == -2


@pytest.mark.parametrize("depth", [1, 2, 5])
def test_scan_balance_finds_closing_line_at_any_nesting(depth):
    """
    Builds a well-formed block nested `depth` levels deep and checks the scan
    lands on the final closing brace.
    """
    # 1. ARRANGE
    lines = []
    for level in range(depth):
        lines.append("  " * level + f"if (x{level}) {{")
    lines.append("  " * depth + "print('deep')")
    for level in reversed(range(depth)):
        lines.append("  " * level + "}")

    # 2. ACT
    end = scan_balance(lines, 0)

    # 3. ASSERT
    assert end == len(lines) - 1


def test_scan_balance_keeps_else_branch_open():
    lines = ["if (a) {", "  1", "} else {", "  2", "}", "x <- 3"]
    assert scan_balance(lines, 0) == 4


def test_scan_balance_one_line_block():
    assert scan_balance(["f <- function() { 1 }", "g()"], 0) == 0


def test_scan_balance_starts_at_opener_found_by_lookahead():
    lines = ["f <- function(a,", "              b)", "{", "  a + b", "}"]
    assert find_opener(lines, 0) == 2
    assert scan_balance(lines, 0) == 4


def test_scan_balance_unclosed_block_raises():
    with pytest.raises(NoMatchingDelimiter):
        scan_balance(["f <- function() {", "  x <- 1", "  {"], 0)


def test_find_opener_outside_lookahead_raises():
    lines = ["for (i in 1:3)"] + ["  # nothing"] * 12 + ["{", "}"]
    with pytest.raises(NoOpenerFound):
        find_opener(lines, 0, lookahead=10)


def test_scanner_counts_delimiters_inside_strings():
    """Delimiters in string literals are counted like any other character."""
    lines = ['f <- function() {', '  cat("}")', '  1', '}']
    assert scan_balance(lines, 0) == 1
