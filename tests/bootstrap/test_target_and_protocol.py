import pytest

from seedling.bootstrap.protocol import resolve_protocol, validate_protocol
from seedling.bootstrap.target import HostTarget
from seedling.errors import MissingHostArgument, ProtocolConflict, UnsupportedProtocol


# ----------------- HostTarget -----------------

def test_parse_full_descriptor():
    t = HostTarget.parse("winrm://admin@win01.example.com:5986")
    assert t.protocol == "winrm"
    assert t.user == "admin"
    assert t.host == "win01.example.com"
    assert t.port == 5986


def test_parse_bare_host():
    t = HostTarget.parse("10.0.0.5")
    assert (t.protocol, t.user, t.host, t.port) == (None, None, "10.0.0.5", None)


def test_parse_bracketed_ipv6_with_port():
    t = HostTarget.parse("ssh://root@[fe80::1]:2222")
    assert t.host == "fe80::1"
    assert t.port == 2222


def test_parse_bare_ipv6_has_no_port():
    t = HostTarget.parse("fe80::1")
    assert t.host == "fe80::1"
    assert t.port is None


@pytest.mark.parametrize("descriptor", [None, "", "   "])
def test_parse_empty_descriptor(descriptor):
    with pytest.raises(MissingHostArgument, match="FQDN or ip"):
        HostTarget.parse(descriptor)


# ----------------- protocol resolution -----------------

def test_descriptor_scheme_wins():
    t = HostTarget.parse("winrm://host")
    assert resolve_protocol(t, None, "ssh") == "winrm"


def test_cli_protocol_beats_config():
    t = HostTarget.parse("host")
    assert resolve_protocol(t, "winrm", "ssh") == "winrm"


def test_configured_protocol_used_when_nothing_else():
    t = HostTarget.parse("host")
    assert resolve_protocol(t, None, "winrm") == "winrm"


def test_defaults_to_ssh():
    assert resolve_protocol(HostTarget.parse("host")) == "ssh"


def test_validate_conflicting_scheme_and_cli():
    t = HostTarget.parse("ssh://host")
    with pytest.raises(ProtocolConflict) as exc:
        validate_protocol(t, "winrm", resolve_protocol(t, "winrm"))
    assert "ssh://host" in str(exc.value)
    assert "winrm" in str(exc.value)


def test_validate_matching_scheme_and_cli():
    t = HostTarget.parse("ssh://host")
    assert validate_protocol(t, "ssh", "ssh") is True


def test_validate_unsupported_protocol():
    t = HostTarget.parse("invalid://host")
    with pytest.raises(UnsupportedProtocol, match="Unsupported protocol 'invalid'"):
        validate_protocol(t, None, resolve_protocol(t))


def test_validate_unsupported_cli_protocol():
    t = HostTarget.parse("host")
    with pytest.raises(UnsupportedProtocol):
        validate_protocol(t, "telnet", resolve_protocol(t, "telnet"))
