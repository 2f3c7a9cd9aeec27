"""
Counts balanced delimiter depth across consecutive lines.

This is a pure function over a line buffer: it walks forward from a start
line and reports where the depth of opening minus closing delimiters returns
to zero. Delimiter characters inside string literals or comments are counted
like any others; the scanner has no lexical awareness.
"""
from errors import NoMatchingDelimiter, NoOpenerFound
from tracer import trace


def net_depth(text: str, opener: str = "{", closer: str = "}") -> int:
    """Returns the count of openers minus closers in a single line."""
    return text.count(opener) - text.count(closer)


@trace
def find_opener(lines: list[str], start_index: int, opener: str = "{", lookahead: int = 10) -> int:
    """
    Finds the first line at or after start_index that contains the opener.

    Args:
        lines: The document buffer.
        start_index: 0-based index where the search starts.
        opener: The opening delimiter character.
        lookahead: How many lines, including the start line, may be inspected.

    Returns:
        The 0-based index of the line holding the opener.

    Raises:
        NoOpenerFound: If no opener appears inside the look-ahead window.
    """
    stop = min(len(lines), start_index + max(lookahead, 1))
    for index in range(start_index, stop):
        if opener in lines[index]:
            return index
    raise NoOpenerFound(f"no '{opener}' within {lookahead} line(s) of line {start_index + 1}")


@trace
def scan_balance(
    lines: list[str],
    start_index: int,
    opener: str = "{",
    closer: str = "}",
    lookahead: int = 10,
) -> int:
    """
    Walks forward from start_index accumulating delimiter depth line by line.

    The depth is updated once per line with that line's net count, so a line
    such as '} else {' keeps the block open instead of closing it.

    Returns:
        The 0-based index of the first line at which depth drops back to zero
        once an opener has been seen.

    Raises:
        NoOpenerFound: If no opener appears within the look-ahead window.
        NoMatchingDelimiter: If the document ends while depth is nonzero.
    """
    first = find_opener(lines, start_index, opener, lookahead)

    depth = 0
    opened = False
    for index in range(first, len(lines)):
        depth += net_depth(lines[index], opener, closer)
        if opener in lines[index]:
            opened = True
        if opened and depth <= 0:
            return index

    raise NoMatchingDelimiter(f"'{opener}' opened near line {first + 1} is never closed")
