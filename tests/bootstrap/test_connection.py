import paramiko
import pytest
from winrm.exceptions import InvalidCredentialsError

from seedling.bootstrap.connection import ConnectionManager, ConnectionState, is_auth_failure
from seedling.bootstrap.connection_opts import ConnectionOptions
from seedling.errors import AuthenticationFailure, TransportError

from conftest import FakeTarget, FakeUI


class ScriptedConnector:
    """Raises or returns the next scripted outcome on each call."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.seen = []

    def __call__(self, opts):
        self.seen.append(opts)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def ssh_opts(**extra):
    return ConnectionOptions("ssh", {"user": "ubuntu", "port": None, "key_files": ["/k"], "keys_only": True, **extra})


def test_connects_first_time():
    target = FakeTarget()
    ui = FakeUI()
    mgr = ConnectionManager(ScriptedConnector(target), ui, "node1")
    assert mgr.connect(ssh_opts()) is target
    assert mgr.history == [ConnectionState.DISCONNECTED, ConnectionState.CONNECTING, ConnectionState.CONNECTED]
    assert ui.of("info") == ["Connecting to node1 using ssh"]
    assert ui.of("ask") == []


def test_auth_failure_prompts_and_retries_once():
    target = FakeTarget()
    ui = FakeUI(answers=["typed-pw"])
    connector = ScriptedConnector(paramiko.AuthenticationException("denied"), target)
    retried = []
    mgr = ConnectionManager(connector, ui, "node1", on_retry=retried.append)

    assert mgr.connect(ssh_opts()) is target
    assert ui.of("warn") == ["Failed to authenticate ubuntu to node1 - trying password auth"]
    assert ui.calls[-1] == ("ask", "Enter password for ubuntu@node1", True)

    second = connector.seen[1]
    assert second.password == "typed-pw"
    assert second["key_files"] == ["/k"]
    assert second["keys_only"] is True
    assert retried == [second]
    assert mgr.history == [
        ConnectionState.DISCONNECTED,
        ConnectionState.CONNECTING,
        ConnectionState.AUTH_FAILED,
        ConnectionState.REAUTHENTICATING,
        ConnectionState.CONNECTING,
        ConnectionState.CONNECTED,
    ]


def test_second_auth_failure_propagates():
    ui = FakeUI(answers=["still-wrong"])
    second = paramiko.AuthenticationException("again")
    mgr = ConnectionManager(ScriptedConnector(paramiko.AuthenticationException("denied"), second), ui, "node1")
    with pytest.raises(paramiko.AuthenticationException) as exc:
        mgr.connect(ssh_opts())
    assert exc.value is second
    assert mgr.state is ConnectionState.FAILED
    assert len([c for c in ui.calls if c[0] == "ask"]) == 1


def test_auth_failure_with_password_is_not_retried():
    ui = FakeUI()
    err = paramiko.AuthenticationException("denied")
    mgr = ConnectionManager(ScriptedConnector(err), ui, "node1")
    with pytest.raises(paramiko.AuthenticationException):
        mgr.connect(ssh_opts(password="given"))
    assert ui.of("warn") == []
    assert ui.of("ask") == []


def test_other_errors_propagate_unchanged():
    ui = FakeUI()
    err = TransportError("connection refused")
    mgr = ConnectionManager(ScriptedConnector(err), ui, "node1")
    with pytest.raises(TransportError) as exc:
        mgr.connect(ssh_opts())
    assert exc.value is err
    assert ui.of("ask") == []


def test_winrm_credential_rejection_is_auth_failure():
    target = FakeTarget(os_name="windows")
    ui = FakeUI(answers=["pw"])
    opts = ConnectionOptions("winrm", {"user": "Administrator", "port": None})
    mgr = ConnectionManager(ScriptedConnector(InvalidCredentialsError("401"), target), ui, "win01")
    assert mgr.connect(opts) is target


def test_is_auth_failure_walks_cause_chain():
    try:
        try:
            raise paramiko.AuthenticationException("inner")
        except paramiko.AuthenticationException as inner:
            raise TransportError("wrapped") from inner
    except TransportError as outer:
        assert is_auth_failure(outer)

    assert is_auth_failure(AuthenticationFailure("x"))
    assert not is_auth_failure(TransportError("x"))
