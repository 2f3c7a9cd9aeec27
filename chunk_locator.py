"""
Locates fenced code chunks in literate documents (R Markdown, Quarto).

Fences are matched with two configurable regular expressions. All public
line numbers are 1-based. The locator never moves a cursor itself: navigation
methods return the target position or raise NoChunkFound, leaving the
caller's position untouched on failure.
"""
import re

from config import CHUNK_END_PATTERN, CHUNK_START_PATTERN
from data_models import ChunkBoundary, SubmissionUnit, UnitKind
from errors import NoChunkFound
from tracer import trace


class ChunkLocator:
    """
    Finds chunk fences in a document buffer with direction- and
    containment-aware semantics.
    """
    def __init__(self, lines: list[str], start_pattern: str = CHUNK_START_PATTERN, end_pattern: str = CHUNK_END_PATTERN):
        self.lines = lines
        self.start_re = re.compile(start_pattern)
        self.end_re = re.compile(end_pattern)

    def _is_start(self, line_number: int) -> bool:
        return bool(self.start_re.search(self.lines[line_number - 1]))

    def _is_end(self, line_number: int) -> bool:
        text = self.lines[line_number - 1]
        return bool(self.end_re.search(text)) and not self.start_re.search(text)

    def _clamp(self, line_number: int) -> int:
        return min(max(line_number, 1), len(self.lines))

    def _search_forward(self, from_line: int) -> int | None:
        for line_number in range(max(from_line, 1), len(self.lines) + 1):
            if self._is_start(line_number):
                return line_number
        return None

    def _search_backward(self, from_line: int) -> int | None:
        for line_number in range(min(from_line, len(self.lines)), 0, -1):
            if self._is_start(line_number):
                return line_number
        return None

    @trace
    def find_enclosing(self, cursor_line: int) -> int | None:
        """
        Returns the start fence of the chunk enclosing the cursor, or None.

        The nearest start fence at or before the cursor only encloses it if no
        end fence lies strictly between the two. A cursor sitting on the end
        fence still belongs to the chunk.
        """
        if not self.lines:
            return None
        cursor_line = self._clamp(cursor_line)
        start = self._search_backward(cursor_line)
        if start is None:
            return None
        for line_number in range(start + 1, cursor_line):
            if self._is_end(line_number):
                return None
        return start

    @trace
    def next(self, cursor_line: int) -> ChunkBoundary:
        """
        Finds the next chunk after the cursor and returns its first content line.

        Raises:
            NoChunkFound: There is no later start fence.
        """
        if not self.lines:
            raise NoChunkFound("no next chunk")
        cursor_line = self._clamp(cursor_line)
        enclosing = self.find_enclosing(cursor_line)
        from_line = enclosing + 1 if enclosing is not None else cursor_line
        start = self._search_forward(from_line)
        if start is None:
            raise NoChunkFound("no next chunk")
        return ChunkBoundary(start_line=start + 1, recenter=True)

    @trace
    def previous(self, cursor_line: int) -> ChunkBoundary:
        """
        Finds the chunk before the one holding the cursor and returns its first
        content line.

        When the cursor is inside a chunk (its body or its start fence) the
        search starts one line above that chunk's start fence, so the chunk
        containing the cursor is never a match.

        Raises:
            NoChunkFound: There is no earlier start fence.
        """
        if not self.lines:
            raise NoChunkFound("no previous chunk")
        cursor_line = self._clamp(cursor_line)
        enclosing = self.find_enclosing(cursor_line)
        from_line = enclosing - 1 if enclosing is not None else cursor_line
        start = self._search_backward(from_line) if from_line >= 1 else None
        if start is None:
            raise NoChunkFound("no previous chunk")
        return ChunkBoundary(start_line=start + 1, recenter=True)

    @trace
    def collect_above(self, cursor_line: int) -> list[list[str]]:
        """
        Collects the content lines of every chunk from the top of the document
        down to and including the cursor line, one group per chunk, in
        document order. Fence lines are excluded, and so are chunks with no
        content above the cursor.
        """
        groups: list[list[str]] = []
        inside = False
        last = self._clamp(cursor_line) if self.lines else 0
        for line_number in range(1, last + 1):
            if self._is_start(line_number):
                inside = True
                groups.append([])
                continue
            if self._is_end(line_number):
                inside = False
                continue
            if inside:
                groups[-1].append(self.lines[line_number - 1])
        return [group for group in groups if group]

    @trace
    def chunk_bounds(self, cursor_line: int) -> ChunkBoundary:
        """
        Returns the start and end fences of the chunk enclosing the cursor. An
        unterminated chunk ends at the end of the document.

        Raises:
            NoChunkFound: The cursor is not inside a chunk.
        """
        start = self.find_enclosing(cursor_line)
        if start is None:
            raise NoChunkFound("cursor is not inside a chunk")
        for line_number in range(start + 1, len(self.lines) + 1):
            if self._is_end(line_number):
                return ChunkBoundary(start_line=start, end_line=line_number)
        return ChunkBoundary(start_line=start, end_line=None)

    @trace
    def current_chunk(self, cursor_line: int) -> SubmissionUnit:
        """
        Builds a chunk unit from the body of the chunk enclosing the cursor.

        Raises:
            NoChunkFound: The cursor is outside any chunk or the chunk is empty.
        """
        bounds = self.chunk_bounds(cursor_line)
        first = bounds.start_line + 1
        last = bounds.end_line - 1 if bounds.end_line is not None else len(self.lines)
        if last < first:
            raise NoChunkFound("the chunk is empty")
        return SubmissionUnit(
            lines=tuple(self.lines[first - 1:last]),
            start_line=first,
            end_line=last,
            kind=UnitKind.CHUNK,
        )

    @trace
    def previous_chunks_unit(self, cursor_line: int) -> SubmissionUnit:
        """
        Flattens collect_above into a single unit covering the document from
        line 1 to the cursor.

        Raises:
            NoChunkFound: No chunk content exists above the cursor.
        """
        groups = self.collect_above(cursor_line)
        flattened = [line for group in groups for line in group]
        if not flattened:
            raise NoChunkFound("no chunks above the cursor")
        return SubmissionUnit(
            lines=tuple(flattened),
            start_line=1,
            end_line=self._clamp(cursor_line),
            kind=UnitKind.PREVIOUS_CHUNKS,
        )
