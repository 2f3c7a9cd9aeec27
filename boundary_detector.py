"""
Decides which lines around the cursor form one logical unit of R code.

The detector classifies the cursor line and then delegates: block openers
(function definitions, control structures, bare braces) are closed with the
delimiter scanner, multi-line calls are closed by parenthesis balance, and
lines ending in an operator are followed down their chain. Anything else is
sent as a single line. An explicit editor selection bypasses classification.
"""
import logging
import re

from config import BLOCK_OPENER_LOOKAHEAD, CALL_SCAN_LOOKAHEAD
from data_models import Selection, SubmissionUnit, UnitKind
from delimiter_scanner import net_depth, scan_balance
from errors import EmptySelection
from tracer import trace

# A lambda '\(' only counts where an expression can start.
FUNCTION_HEAD = re.compile(
    r"(?<![\w.])function\s*\(|(?:^|(?<=[\s(\[,=<>~|&!+\-*/{;]))\\\s*\("
)
CONTROL_HEAD = re.compile(r"^(if|for|while)\s*\(")
REPEAT_HEAD = re.compile(r"^repeat\b")
BARE_BRACE = re.compile(r"^\{")

# Quoted text, honouring backslash escapes. Only used to classify the cursor
# line; the delimiter scanner itself still counts raw characters.
STRING_LITERAL = re.compile(r"'(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\"")

# Binary, arithmetic, relational, assignment and formula operators, any
# %...% infix operator (%>%, %in%, %<>%), and the native |> pipe.
CONTINUATION = re.compile(
    r"(%[^%\s]*%|\|>|<<-|<-|->>|->|&&|\|\||==|!=|<=|>=|[-+*/^<>=&|~])$"
)


def _is_skippable(line: str) -> bool:
    """Blank and comment-only lines never break a chain."""
    stripped = line.strip()
    return not stripped or stripped.startswith("#")


def _ends_with_continuation(line: str) -> bool:
    return bool(CONTINUATION.search(line.rstrip()))


def _code_text(line: str) -> str:
    """The trimmed line with the contents of string literals blanked out."""
    return STRING_LITERAL.sub('""', line.strip())


def _text_after_paren(text: str, open_pos: int) -> str | None:
    """
    Returns what follows the parenthesis opened at open_pos, or None when it
    is not closed on this line.
    """
    depth = 0
    for pos in range(open_pos, len(text)):
        if text[pos] == "(":
            depth += 1
        elif text[pos] == ")":
            depth -= 1
            if depth == 0:
                return text[pos + 1:]
    return None


def _has_inline_body(remainder: str | None) -> bool:
    if remainder is None:
        return False
    body = remainder.split("#", 1)[0].strip()
    return bool(body)


@trace
def is_block_opener(line: str) -> bool:
    """
    True for a function-definition head, a control-structure head or a bare
    opening brace. A head that is complete on its own line, such as
    'if (x) y' or 'f <- function(x) x + 1', is not an opener.
    """
    stripped = _code_text(line)
    if not stripped or stripped.startswith("#"):
        return False
    if BARE_BRACE.match(stripped):
        return True

    head = FUNCTION_HEAD.search(stripped) or CONTROL_HEAD.match(stripped)
    if head:
        if "{" in stripped[head.start():]:
            return True
        remainder = _text_after_paren(stripped, head.end() - 1)
        if remainder is not None and net_depth(stripped, "(", ")") > 0:
            # 'sapply(xs, function(x)' leaves the enclosing call open.
            return False
        return not _has_inline_body(remainder)

    repeat = REPEAT_HEAD.match(stripped)
    if repeat:
        return "{" in stripped or not _has_inline_body(stripped[repeat.end():])
    return False


@trace
def opens_call(line: str) -> bool:
    """True when a line leaves a parenthesis open, as in a multi-line call."""
    stripped = _code_text(line)
    if not stripped or stripped.startswith("#"):
        return False
    return net_depth(stripped, "(", ")") > 0


@trace
def is_continuation(line: str) -> bool:
    """True when the right-trimmed line ends in a continuation operator."""
    if _is_skippable(line):
        return False
    return _ends_with_continuation(line)


def _walk_chain(lines: list[str], index: int) -> int:
    """
    Follows an operator chain starting at the 0-based index and returns the
    index of its last line. Parentheses left open by a link keep the chain
    going until they close. A chain that never terminates ends at the last
    non-skippable line of the document.
    """
    depth = max(net_depth(lines[index], "(", ")"), 0)
    last = index
    for i in range(index + 1, len(lines)):
        line = lines[i]
        if _is_skippable(line):
            continue
        last = i
        depth += net_depth(line, "(", ")")
        if _ends_with_continuation(line) or depth > 0:
            continue
        return i
    logging.info(f"Chain starting at line {index + 1} runs to end of document; truncating.")
    return last


def _build_unit(lines: list[str], start: int, end: int, kind: UnitKind) -> SubmissionUnit:
    return SubmissionUnit(lines=tuple(lines[start:end + 1]), start_line=start + 1, end_line=end + 1, kind=kind)


@trace
def resolve_unit(lines: list[str], cursor_line: int) -> SubmissionUnit:
    """
    Resolves the submission unit for a cursor line.

    Args:
        lines: The document buffer.
        cursor_line: 1-based line of the cursor; clamped to the document.

    Returns:
        A SubmissionUnit of kind block, pipe_chain or single_line.

    Raises:
        NoMatchingDelimiter: A block or call is never closed.
        NoOpenerFound: A block head has no '{' within the look-ahead window.
        EmptySelection: The document has no lines at all.
    """
    if not lines:
        raise EmptySelection("the document is empty")
    index = min(max(cursor_line, 1), len(lines)) - 1
    line = lines[index]

    if is_block_opener(line):
        end = scan_balance(lines, index, "{", "}", lookahead=BLOCK_OPENER_LOOKAHEAD)
        return _build_unit(lines, index, end, UnitKind.BLOCK)

    if opens_call(line):
        end = scan_balance(lines, index, "(", ")", lookahead=CALL_SCAN_LOOKAHEAD)
        if _ends_with_continuation(lines[end]):
            return _build_unit(lines, index, _walk_chain(lines, end), UnitKind.PIPE_CHAIN)
        return _build_unit(lines, index, end, UnitKind.BLOCK)

    if is_continuation(line):
        return _build_unit(lines, index, _walk_chain(lines, index), UnitKind.PIPE_CHAIN)

    return _build_unit(lines, index, index, UnitKind.SINGLE_LINE)


@trace
def resolve_single_line(lines: list[str], cursor_line: int) -> SubmissionUnit:
    """Sends exactly the cursor line, skipping classification."""
    if not lines:
        raise EmptySelection("the document is empty")
    index = min(max(cursor_line, 1), len(lines)) - 1
    return _build_unit(lines, index, index, UnitKind.SINGLE_LINE)


@trace
def resolve_selection(lines: list[str], selection: Selection) -> SubmissionUnit:
    """
    Builds a selection unit from an explicit editor range, trimming the first
    and last lines to the selected columns.

    Raises:
        EmptySelection: The range is reversed, outside the document or
            zero-length.
    """
    if selection.end_line < selection.start_line or selection.start_line > len(lines):
        raise EmptySelection()
    start = selection.start_line - 1
    end = min(selection.end_line, len(lines)) - 1
    chosen = list(lines[start:end + 1])

    start_col = selection.start_col or 0
    if start == end:
        stop = selection.end_col if selection.end_col is not None else len(chosen[0])
        chosen[0] = chosen[0][start_col:stop]
    else:
        chosen[0] = chosen[0][start_col:]
        if selection.end_col is not None:
            chosen[-1] = chosen[-1][:selection.end_col]

    if len(chosen) == 1 and not chosen[0]:
        raise EmptySelection()
    return SubmissionUnit(lines=tuple(chosen), start_line=start + 1, end_line=end + 1, kind=UnitKind.SELECTION)


@trace
def next_cursor_line(lines: list[str], unit: SubmissionUnit) -> int:
    """First non-blank line after the unit, or the last line of the document."""
    for index in range(unit.end_line, len(lines)):
        if lines[index].strip():
            return index + 1
    return max(len(lines), 1)
