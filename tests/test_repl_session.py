import subprocess

import pytest

from errors import SessionCreationFailed, SessionUnavailable
from repl_session import ReplSession
from session_models import SessionConfig, SessionStatus


def test_start_exports_signal_file_and_geometry(session_config, mocker):
    process = mocker.MagicMock(pid=77, **{"poll.return_value": None})
    popen = mocker.patch("repl_session.subprocess.Popen", return_value=process)

    session = ReplSession("R-env", session_config).start()

    kwargs = popen.call_args.kwargs
    assert kwargs["env"]["RELAY_SIGNAL_FILE"] == session.signal_path
    assert kwargs["env"]["COLUMNS"] == "120"
    assert kwargs["stdin"] == subprocess.PIPE
    popen.return_value.stdin.write.assert_called_once_with("options(width = 120)\n")
    assert session.status == SessionStatus.RUNNING
    assert session.pid == 77


def test_extra_environment_is_layered_in(fake_popen, tmp_path):
    config = SessionConfig(scratch_dir=str(tmp_path), env={"R_LIBS_USER": "/opt/rlib"}, width=80)
    session = ReplSession("R-env", config).start()
    assert session.config.width == 80
    fake_popen[0].stdin.write.assert_called_once_with("options(width = 80)\n")


def test_missing_r_binary_fails_creation(mocker, session_config):
    mocker.patch("repl_session.subprocess.Popen", side_effect=FileNotFoundError("R"))
    session = ReplSession("R-none", session_config)
    with pytest.raises(SessionCreationFailed):
        session.start()
    assert session.status == SessionStatus.DEAD


def test_process_exiting_during_startup_fails_creation(mocker, session_config):
    mocker.patch("repl_session.subprocess.Popen", return_value=mocker.MagicMock(**{"poll.return_value": 2}))
    with pytest.raises(SessionCreationFailed):
        ReplSession("R-crash", session_config).start()


def test_send_line_to_exited_session_raises(fake_popen, session_config):
    session = ReplSession("R-x", session_config).start()
    fake_popen[0].poll.return_value = 0
    with pytest.raises(SessionUnavailable):
        session.send_line("1 + 1")
    assert not session.is_alive()


def test_terminate_kills_a_stubborn_process(fake_popen, session_config):
    session = ReplSession("R-x", session_config).start()
    fake_popen[0].wait.side_effect = subprocess.TimeoutExpired("R", 2)

    session.terminate()

    fake_popen[0].kill.assert_called_once()
    assert session.status == SessionStatus.DEAD


def test_describe_reports_binding(fake_popen, session_config):
    info = ReplSession("R-x", session_config).start().describe("R-doc")
    assert (info.context_key, info.session_label, info.status) == ("R-doc", "R-x", SessionStatus.RUNNING)
