import pytest

from data_models import EditingContext
from errors import SessionUnavailable

# Test Protocol for session_registry.SessionRegistry.force_associate

def test_REG_ASC_001_overwrites_binding(registry):
    """
    Tests REG-ASC-001: A context bound to its own session can be moved to another.
    """
    context = EditingContext(document="draft.Rmd")
    registry.resolve(context)
    target = registry.spawn("R-console")
    registry.force_associate(context, target)
    assert registry.resolve(context) is target

def test_REG_ASC_002_unknown_label(registry):
    """
    Tests REG-ASC-002: An unknown label raises SessionUnavailable.
    """
    with pytest.raises(SessionUnavailable):
        registry.force_associate(EditingContext(document="draft.Rmd"), "R-ghost")

def test_REG_ASC_003_dead_label(registry, fake_popen):
    """
    Tests REG-ASC-003: A session that exited before being reaped cannot be
    associated, and the registry forgets it.
    """
    registry.spawn("R-console")
    fake_popen[0].poll.return_value = 1

    with pytest.raises(SessionUnavailable):
        registry.force_associate(EditingContext(document="draft.Rmd"), "R-console")

    assert registry.list() == []
