import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from audit_logger import audit_log
from session_models import SessionConfig
from session_registry import SessionRegistry
from tracer import global_tracer


@pytest.fixture(autouse=True)
def isolated_audit_trail(tmp_path):
    """Keeps audit rows written during a test out of the real trail."""
    original = audit_log.filepath
    audit_log.redirect(str(tmp_path / "audit_trail.csv"))
    yield audit_log
    audit_log.filepath = original


@pytest.fixture
def fake_popen(mocker):
    """
    Replaces subprocess.Popen with a factory of mock R processes. Each mock
    stays alive until a test sets `process.poll.return_value` to an exit code.
    """
    processes = []

    def _spawn(*args, **kwargs):
        process = mocker.MagicMock()
        process.pid = 4000 + len(processes)
        process.poll.return_value = None
        process.returncode = None
        processes.append(process)
        return process

    mocker.patch("repl_session.subprocess.Popen", side_effect=_spawn)
    return processes


@pytest.fixture
def session_config(tmp_path):
    return SessionConfig(scratch_dir=str(tmp_path / "scratch"))


@pytest.fixture
def registry(fake_popen, session_config):
    return SessionRegistry(config=session_config)


@pytest.fixture(autouse=True)
def clean_tracer():
    global_tracer.reset()
    yield global_tracer
