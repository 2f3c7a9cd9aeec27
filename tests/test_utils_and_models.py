import pytest
from pydantic import ValidationError

from data_models import DocumentKind, EditingContext, SubmissionUnit, UnitKind
from errors import NoChunkFound, SessionUnavailable
from tracer import global_tracer, log_event, trace
from utils import escape_r_string, sanitize_label


@pytest.mark.parametrize(
    "name, expected",
    [
        ("analysis.R", "analysis"),
        ("/tmp/My Report (final).Rmd", "My-Report-final"),
        ("C:\\work\\model.qmd", "C-work-model"),
        ("....", "untitled"),
    ],
)
def test_sanitize_label(name, expected):
    assert sanitize_label(name) == expected


def test_escape_r_string():
    assert escape_r_string('C:\\tmp\\a "b".R') == 'C:\\\\tmp\\\\a \\"b\\".R'


def test_document_kind_is_inferred_from_extension():
    assert EditingContext(document="notes.Rmd").kind == DocumentKind.LITERATE
    assert EditingContext(document="paper.qmd").kind == DocumentKind.LITERATE
    assert EditingContext(document="script.R").kind == DocumentKind.SCRIPT


def test_submission_unit_is_immutable_and_validated():
    unit = SubmissionUnit(lines=("a", "b"), start_line=1, end_line=2, kind=UnitKind.BLOCK)
    assert unit.text == "a\nb"
    with pytest.raises(ValidationError):
        unit.start_line = 5
    with pytest.raises(ValidationError):
        SubmissionUnit(lines=(), start_line=1, end_line=1, kind=UnitKind.BLOCK)
    with pytest.raises(ValidationError):
        SubmissionUnit(lines=("a",), start_line=3, end_line=2, kind=UnitKind.BLOCK)


def test_error_notifications():
    assert NoChunkFound().notification == "No chunk found."
    assert SessionUnavailable("R-a").notification == "The R session is not accepting input. (R-a)"
    assert isinstance(NoChunkFound(), RuntimeError)


def test_tracer_records_nested_calls_and_events():
    @trace
    def inner(x):
        log_event("seen", {"x": x})
        return x * 2

    @trace
    def outer():
        return inner(21)

    outer()
    entry = global_tracer.get_trace()[-1]

    assert entry["function"].endswith("outer")
    assert entry["return_value"] == "42"
    nested = entry["nested_calls"][0]
    assert nested["function"].endswith("inner")
    assert nested["nested_calls"][0]["event_name"].endswith(".seen")
    assert "elapsed_ms" in entry
