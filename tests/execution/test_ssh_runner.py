import shlex
import types

import paramiko
import pytest

from hostprep.directives.files import FileContentDirective
from hostprep.errors import CommandError, DirectiveError
from hostprep.execution.context import ExecutionContext
from hostprep.execution.ssh_runner import SshRunner
from hostprep.host.context import HostContext
from hostprep.reconcile.directive import Outcome
from hostprep.reconcile.reconciler import Reconciler

# ----------------- Fakes for Paramiko -----------------

class _FakeChannel:
    def __init__(self, rc=0): self._rc = rc
    def recv_exit_status(self): return self._rc
    def shutdown_write(self): pass

class _Buf:
    def __init__(self, s=b""): self._s = s
    def read(self): return self._s

class _Stdin:
    def __init__(self, log):
        self.log = log
        self.channel = _FakeChannel()
    def write(self, data): self.log.append(("stdin", data))
    def flush(self): pass

class _FakeFile:
    def __init__(self, log, path):
        self.log = log
        self.path = path
    def __enter__(self): return self
    def __exit__(self, *exc): return False
    def write(self, data): self.log.append(("sftp_write", self.path, data))

class FakeSFTP:
    def __init__(self, log): self.log = log
    def open(self, path, mode):
        self.log.append(("sftp_open", path, mode))
        return _FakeFile(self.log, path)
    def close(self): self.log.append(("sftp_close",))

class FakeSSHClient:
    def __init__(self, log, responses=None):
        self.log = log
        self._responses = responses or {}
    def open_sftp(self):
        return FakeSFTP(self.log)
    def exec_command(self, cmd, timeout=None):
        self.log.append(("exec", cmd))
        out, err, rc = self._responses.get(cmd, ("", "", 0))
        stdout = _Buf(out.encode())
        stdout.channel = _FakeChannel(rc)
        return _Stdin(self.log), stdout, _Buf(err.encode())
    def close(self):
        self.log.append(("close",))

# ----------------- Tests -----------------

def test_non_root_ssh_user_gets_sudo_prefix():
    log = []
    r = SshRunner(FakeSSHClient(log, {"sudo -n id -u": ("0\n", "", 0)}), address="10.0.0.5", username="ubuntu")

    assert r.effective_uid() == 0
    assert ("exec", "sudo -n id -u") in log
    assert r.describe() == "ubuntu@10.0.0.5"


def test_root_ssh_user_runs_plain_and_impersonates():
    log = []
    r = SshRunner(FakeSSHClient(log), address="h", username="root")

    r.run(["npm", "list", "-g", "x"], ctx=ExecutionContext(user="rahul"))

    cmd = [c for kind, c in (e for e in log if e[0] == "exec")][0]
    assert shlex.split(cmd)[:6] == ["sudo", "-u", "rahul", "-H", "bash", "-lc"]


def test_stdin_is_forwarded():
    log = []
    r = SshRunner(FakeSSHClient(log), address="h")
    r.run(["gpg", "--dearmor"], input=b"KEY")
    assert ("stdin", b"KEY") in log


def test_write_file_uploads_then_installs_and_renames():
    log = []
    r = SshRunner(FakeSSHClient(log), address="h", username="root")

    r.write_file("/etc/sysctl.d/99-custom.conf", b"vm.swappiness = 10\n", mode=0o644)

    writes = [e for e in log if e[0] == "sftp_write"]
    assert writes[0][2] == b"vm.swappiness = 10\n"
    tmp = writes[0][1]
    assert tmp.startswith("/tmp/.hostprep_tmp_")

    execs = [shlex.split(e[1]) for e in log if e[0] == "exec"]
    assert execs[0] == [
        "install", "-m", "644", "-o", "root", "-g", "root", tmp,
        "/etc/sysctl.d/99-custom.conf.hostprep-new",
    ]
    assert execs[1] == ["mv", "-f", "/etc/sysctl.d/99-custom.conf.hostprep-new", "/etc/sysctl.d/99-custom.conf"]
    assert execs[2][:2] == ["rm", "-f"]


def test_read_file_missing_returns_none():
    log = []
    r = SshRunner(FakeSSHClient(log, {"test -f /etc/os-release": ("", "", 1)}), address="h")
    assert r.read_file("/etc/os-release") is None


class RefusingSSHClient(FakeSSHClient):
    """Answers ``id -u`` and refuses any further channel, like a MaxSessions limit."""

    def exec_command(self, cmd, timeout=None):
        if cmd == "id -u":
            return super().exec_command(cmd, timeout)
        self.log.append(("refused", cmd))
        raise paramiko.ChannelException(2, "Connect failed")

    def open_sftp(self):
        raise paramiko.SSHException("sftp subsystem unavailable")


def test_channel_failure_is_command_error():
    r = SshRunner(RefusingSSHClient([]), address="h")

    with pytest.raises(CommandError, match="Connect failed") as exc:
        r.run(["systemctl", "is-active", "fail2ban"])
    assert exc.value.returncode == 255


def test_sftp_failure_is_directive_error():
    r = SshRunner(RefusingSSHClient([]), address="h")

    with pytest.raises(DirectiveError, match="sftp subsystem unavailable"):
        r.write_file("/etc/sysctl.d/99-custom.conf", b"vm.swappiness = 10\n")


def test_dropped_channel_fails_directive_without_aborting_run():
    log = []
    host = HostContext(runner=SshRunner(RefusingSSHClient(log, {"id -u": ("0\n", "", 0)}), address="h"))
    first = FileContentDirective("/etc/sysctl.d/99-custom.conf", "sysctl.conf.j2", {"settings": {"vm.swappiness": 10}})
    second = FileContentDirective("/etc/sysctl.d/98-other.conf", "sysctl.conf.j2", {"settings": {"fs.file-max": 1}})

    report = Reconciler(host).run([first, second])

    assert [r.outcome for r in report.results] == [Outcome.FAILED, Outcome.FAILED]
    assert "Connect failed" in report.results[0].message
    assert any(e[0] == "refused" for e in log)
