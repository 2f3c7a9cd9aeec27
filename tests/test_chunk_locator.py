import pytest

from chunk_locator import ChunkLocator
from data_models import UnitKind
from errors import NoChunkFound

# Chunks at lines [2-4] and [7-9].
DOCUMENT = [
    "# Report",
    "```{r}",
    "x <- 1",
    "```",
    "",
    "Some prose.",
    "```{r summary, echo=FALSE}",
    "y <- x + 1",
    "```",
    "The end.",
]


@pytest.fixture
def locator():
    return ChunkLocator(DOCUMENT)


def test_scenario_c_previous_skips_the_enclosing_chunk(locator):
    boundary = locator.previous(8)
    assert boundary.start_line == 3
    assert boundary.recenter is True


def test_previous_from_start_fence_skips_that_chunk(locator):
    assert locator.previous(7).start_line == 3


def test_previous_from_first_chunk_raises(locator):
    with pytest.raises(NoChunkFound):
        locator.previous(3)


def test_previous_from_prose_below_a_chunk(locator):
    assert locator.previous(10).start_line == 8


def test_next_from_inside_a_chunk(locator):
    assert locator.next(3).start_line == 8


def test_next_from_before_any_chunk(locator):
    assert locator.next(1).start_line == 3


def test_next_past_the_last_chunk_raises(locator):
    with pytest.raises(NoChunkFound):
        locator.next(8)


@pytest.mark.parametrize("cursor", [2, 3, 4])
def test_next_then_previous_returns_to_the_enclosing_chunk(locator, cursor):
    forward = locator.next(cursor)
    back = locator.previous(forward.start_line)
    assert back.start_line == 3


@pytest.mark.parametrize(
    "cursor, expected",
    [(1, None), (2, 2), (3, 2), (4, 2), (5, None), (6, None), (8, 7), (10, None)],
)
def test_find_enclosing(locator, cursor, expected):
    assert locator.find_enclosing(cursor) == expected


def test_collect_above_groups_per_chunk(locator):
    assert locator.collect_above(10) == [["x <- 1"], ["y <- x + 1"]]
    assert locator.collect_above(3) == [["x <- 1"]]
    assert locator.collect_above(1) == []


def test_collect_above_from_a_start_fence_has_no_empty_group(locator):
    assert locator.collect_above(7) == [["x <- 1"]]


def test_collect_above_is_idempotent(locator):
    assert locator.collect_above(8) == locator.collect_above(8)


def test_current_chunk(locator):
    unit = locator.current_chunk(8)
    assert unit.kind == UnitKind.CHUNK
    assert unit.lines == ("y <- x + 1",)
    assert (unit.start_line, unit.end_line) == (8, 8)


def test_current_chunk_outside_any_chunk_raises(locator):
    with pytest.raises(NoChunkFound):
        locator.current_chunk(6)


def test_unterminated_chunk_runs_to_end_of_document():
    lines = ["```{r}", "a <- 1", "b <- 2"]
    locator = ChunkLocator(lines)
    assert locator.chunk_bounds(2).end_line is None
    assert locator.current_chunk(2).lines == ("a <- 1", "b <- 2")


def test_empty_chunk_raises():
    with pytest.raises(NoChunkFound):
        ChunkLocator(["```{r}", "```"]).current_chunk(1)


def test_previous_chunks_unit_flattens_in_order(locator):
    unit = locator.previous_chunks_unit(9)
    assert unit.kind == UnitKind.PREVIOUS_CHUNKS
    assert unit.lines == ("x <- 1", "y <- x + 1")
    assert (unit.start_line, unit.end_line) == (1, 9)


def test_previous_chunks_without_content_raises(locator):
    with pytest.raises(NoChunkFound):
        locator.previous_chunks_unit(1)


def test_custom_fence_patterns():
    lines = ["<<setup>>=", "library(stats)", "@", "<<plot>>=", "plot(1)", "@"]
    locator = ChunkLocator(lines, start_pattern=r"^<<.*>>=\s*$", end_pattern=r"^@\s*$")
    assert locator.next(2).start_line == 5
    assert locator.collect_above(6) == [["library(stats)"], ["plot(1)"]]


def test_empty_document_raises_on_navigation():
    with pytest.raises(NoChunkFound):
        ChunkLocator([]).next(1)
