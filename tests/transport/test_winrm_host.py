import base64

import pytest
from winrm.exceptions import WinRMOperationTimeoutError

import seedling.transport.winrm_host as mod
from seedling.bootstrap.connection_opts import ConnectionOptions
from seedling.errors import TransportError
from seedling.transport.winrm_host import UPLOAD_CHUNK, WinrmTargetHost, encode_powershell


class FakeProtocol:
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.commands = []
        self.cleaned = []
        self.closed = []
        # command -> list of poll results (stdout, stderr, rc, done) or exceptions
        self.polls = {}
        self.default_rc = 0
        FakeProtocol.instances.append(self)

    def open_shell(self):
        return "SHELL-1"

    def close_shell(self, shell_id):
        self.closed.append(shell_id)

    def run_command(self, shell_id, command):
        self.commands.append(command)
        return f"CMD-{len(self.commands)}"

    def get_command_output_raw(self, shell_id, command_id):
        command = self.commands[int(command_id.split("-")[1]) - 1]
        queue = self.polls.get(command)
        if not queue:
            return b"", b"", self.default_rc, True
        item = queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def cleanup_command(self, shell_id, command_id):
        self.cleaned.append(command_id)


@pytest.fixture(autouse=True)
def fake_protocol(monkeypatch):
    FakeProtocol.instances = []
    monkeypatch.setattr(mod.winrm, "Protocol", FakeProtocol)
    return FakeProtocol


def opts(**kw):
    base = {
        "user": "Administrator",
        "port": None,
        "password": "pw",
        "self_signed": False,
        "winrm_transport": "negotiate",
        "winrm_basic_auth_only": False,
        "ssl": False,
        "ssl_peer_fingerprint": None,
        "operation_timeout": 30,
    }
    base.update(kw)
    return ConnectionOptions("winrm", base)


def connected(**kw):
    host = WinrmTargetHost("win01", opts(**kw))
    host.connect()
    return host, FakeProtocol.instances[-1]


def decode_ps(command):
    return base64.b64decode(command.rsplit(" ", 1)[1]).decode("utf-16-le")


def test_connect_plain_http():
    host, proto = connected()
    assert proto.kwargs["endpoint"] == "http://win01:5985/wsman"
    assert proto.kwargs["transport"] == "negotiate"
    assert proto.kwargs["username"] == "Administrator"
    assert proto.kwargs["server_cert_validation"] == "validate"
    assert proto.kwargs["operation_timeout_sec"] == 30


def test_connect_ssl_self_signed_basic():
    host, proto = connected(ssl=True, self_signed=True, winrm_basic_auth_only=True, ca_trust_file="/ca.pem")
    assert proto.kwargs["endpoint"] == "https://win01:5986/wsman"
    assert proto.kwargs["transport"] == "basic"
    assert proto.kwargs["server_cert_validation"] == "ignore"
    assert proto.kwargs["ca_trust_path"] == "/ca.pem"


def test_connect_kerberos_realm():
    _, proto = connected(winrm_transport="kerberos", kerberos_service="HTTP", kerberos_realm="EXAMPLE.COM")
    assert proto.kwargs["username"] == "Administrator@EXAMPLE.COM"
    assert proto.kwargs["realm"] == "EXAMPLE.COM"
    assert proto.kwargs["service"] == "HTTP"


def test_fingerprint_checked_before_connecting(monkeypatch):
    checked = []
    monkeypatch.setattr(WinrmTargetHost, "verify_fingerprint", lambda self, fp: checked.append(fp))
    _, proto = connected(ssl=True, ssl_peer_fingerprint="AB:CD")
    assert checked == ["AB:CD"]
    assert proto.kwargs["server_cert_validation"] == "ignore"


def test_fingerprint_mismatch(monkeypatch):
    monkeypatch.setattr(mod.ssl, "get_server_certificate", lambda addr: "PEM")
    monkeypatch.setattr(mod.ssl, "PEM_cert_to_DER_cert", lambda pem: b"der")
    host = WinrmTargetHost("win01", opts(ssl=True, ssl_peer_fingerprint="00:11"))
    with pytest.raises(TransportError, match="fingerprint mismatch"):
        host.connect()


def test_run_command_streams_and_survives_poll_timeouts():
    host, proto = connected()
    proto.polls["cmd.exe /C b.bat"] = [
        (b"first li", b"", 0, False),
        WinRMOperationTimeoutError(),
        (b"ne\nsecond\n", b"oops", 2, True),
    ]
    chunks = []
    result = host.run_command("cmd.exe /C b.bat", chunks.append)
    assert "".join(chunks) == "first line\nsecond\n"
    assert result.exit_status == 2
    assert result.stderr == "oops"
    assert proto.cleaned == ["CMD-1"]


def test_base_os_and_paths():
    host, proto = connected()
    assert host.base_os() == "windows"
    assert host.normalize_path("C:/Temp/bootstrap/bootstrap.bat") == "C:\\Temp\\bootstrap\\bootstrap.bat"


def test_temp_dir_via_powershell():
    host, proto = connected()

    def poll(shell_id, command_id):
        return b"C:\\Users\\a\\AppData\\Local\\Temp\\seedling-1\r\n", b"", 0, True

    proto.get_command_output_raw = poll
    assert host.temp_dir() == "C:\\Users\\a\\AppData\\Local\\Temp\\seedling-1"
    assert "New-Item" in decode_ps(proto.commands[0])


def test_upload_is_chunked():
    host, proto = connected()
    content = "x" * (UPLOAD_CHUNK * 2 + 10)
    host.save_as_remote_file(content, "C:\\Temp\\b.bat")

    scripts = [decode_ps(c) for c in proto.commands]
    assert "WriteAllBytes('C:\\Temp\\b.bat'" in scripts[0]
    assert len(scripts) == 4
    uploaded = b"".join(
        base64.b64decode(s.split("FromBase64String('")[1].split("'")[0]) for s in scripts[1:]
    )
    assert uploaded.decode() == content


def test_upload_failure_raises():
    host, proto = connected()
    proto.default_rc = 1
    with pytest.raises(TransportError, match="Could not create"):
        host.save_as_remote_file("x", "C:\\Temp\\b.bat")


def test_del_file_and_close():
    host, proto = connected()
    host.del_file("C:\\Temp\\it's.bat")
    assert "Remove-Item -Force -LiteralPath 'C:\\Temp\\it''s.bat'" in decode_ps(proto.commands[0])
    host.close()
    assert proto.closed == ["SHELL-1"]


def test_encode_powershell_roundtrip():
    cmd = encode_powershell("Write-Output 1")
    assert cmd.startswith("powershell.exe -NoProfile -NonInteractive -EncodedCommand ")
    assert decode_ps(cmd) == "Write-Output 1"
