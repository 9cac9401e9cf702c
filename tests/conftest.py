from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Dict, List, Optional, Set, Tuple

import pytest

from hostprep.errors import CommandError
from hostprep.execution.runner import BaseRunner, CommandResult
from hostprep.host.context import HostContext


# ----------------- Fake runner -----------------

@dataclass
class Call:
    argv: List[str]
    ctx: object = None
    env: Optional[dict] = None
    input: object = None

    @property
    def user(self) -> str:
        return self.ctx.user if self.ctx is not None else "root"


Handler = Callable[[List[str]], Tuple[int, str, str]]


class FakeRunner(BaseRunner):
    """
    In-memory host: files and dirs live in dicts, commands are answered by
    registered handlers (longest matching argv prefix wins, default rc 0).
    """

    label = "fake"

    def __init__(self, uid: int = 0):
        self.uid = uid
        self.files: Dict[str, bytes] = {}
        self.modes: Dict[str, int] = {}
        self.owners: Dict[str, str] = {}
        self.dirs: Set[str] = {"/", "/etc", "/tmp", "/root"}
        self.commands: Dict[str, str] = {}
        self.passwd: Dict[str, str] = {}
        self.groups: Dict[str, List[str]] = {}
        self.handlers: List[Tuple[Tuple[str, ...], Handler]] = []
        self.calls: List[Call] = []
        self.writes: List[str] = []

    # -- scripting helpers --

    def on(self, *prefix: str, rc: int = 0, stdout: str = "", stderr: str = "", fn: Optional[Handler] = None):
        handler = fn or (lambda argv: (rc, stdout, stderr))
        self.handlers.append((tuple(prefix), handler))

    def install(self, *names: str) -> None:
        for n in names:
            self.commands[n] = f"/usr/bin/{n}"

    def add_user(self, name: str, uid: int = 1000, home: Optional[str] = None, shell: str = "/bin/bash", groups=()):
        home = home or ("/root" if name == "root" else f"/home/{name}")
        self.passwd[name] = f"{name}:x:{uid}:{uid}::{home}:{shell}"
        self.groups[name] = [name, *groups]
        self.dirs.add(home)
        self.owners[home] = name

    def add_file(self, path, data, owner: str = "root") -> None:
        key = str(PurePosixPath(path))
        self.files[key] = data.encode() if isinstance(data, str) else data
        self.owners[key] = owner
        self.make_dir(PurePosixPath(key).parent)

    def argvs(self) -> List[List[str]]:
        return [c.argv for c in self.calls]

    def ran(self, *prefix: str) -> bool:
        return any(tuple(a[: len(prefix)]) == prefix for a in self.argvs())

    def calls_for(self, *prefix: str) -> List[Call]:
        return [c for c in self.calls if tuple(c.argv[: len(prefix)]) == prefix]

    # -- BaseRunner --

    def run(self, cmd, *, ctx=None, env=None, input=None, check=False) -> CommandResult:
        argv = [str(c) for c in cmd]
        self.calls.append(Call(argv, ctx, env, input))
        rc, out, err = self._dispatch(argv)
        result = CommandResult(argv, rc, out, err)
        if check and not result.ok:
            raise CommandError(argv, rc, out, err)
        return result

    def _dispatch(self, argv: List[str]) -> Tuple[int, str, str]:
        best = None
        for prefix, handler in self.handlers:
            if tuple(argv[: len(prefix)]) == prefix and (best is None or len(prefix) >= len(best[0])):
                best = (prefix, handler)
        if best:
            return best[1](argv)

        if argv[:2] == ["sh", "-c"] and argv[2].startswith("command -v "):
            name = argv[2].split()[-1].strip("'")
            path = self.commands.get(name)
            return (0, path + "\n", "") if path else (1, "", "")
        if argv[:2] == ["getent", "passwd"]:
            line = self.passwd.get(argv[2])
            return (0, line + "\n", "") if line else (2, "", "")
        if argv[:2] == ["id", "-nG"]:
            groups = self.groups.get(argv[2])
            return (0, " ".join(groups) + "\n", "") if groups else (1, "", "no such user")
        return 0, "", ""

    def _exec(self, argv, *, input=None):
        raise AssertionError("FakeRunner dispatches in run()")

    def exists(self, path) -> bool:
        key = str(PurePosixPath(path))
        return key in self.files or key in self.dirs

    def is_dir(self, path) -> bool:
        return str(PurePosixPath(path)) in self.dirs

    def read_file(self, path) -> Optional[bytes]:
        return self.files.get(str(PurePosixPath(path)))

    def write_file(self, path, data: bytes, *, mode: int = 0o644, owner: Optional[str] = None) -> None:
        key = str(PurePosixPath(path))
        self.files[key] = data
        self.modes[key] = mode
        self.owners[key] = (owner or "root").split(":")[0]
        self.writes.append(key)

    def remove(self, path, *, recursive: bool = False) -> None:
        key = str(PurePosixPath(path))
        self.files.pop(key, None)
        self.dirs.discard(key)
        if recursive:
            for k in [k for k in self.files if k.startswith(key + "/")]:
                del self.files[k]
            self.dirs -= {d for d in self.dirs if d.startswith(key + "/")}

    def make_dir(self, path, *, mode: int = 0o755, owner: Optional[str] = None) -> None:
        p = PurePosixPath(path)
        for d in [p, *p.parents]:
            self.dirs.add(str(d))
        if owner:
            self.owners[str(p)] = owner.split(":")[0]

    def owner_of(self, path) -> Optional[str]:
        return self.owners.get(str(PurePosixPath(path)))

    def effective_uid(self) -> int:
        return self.uid


# ----------------- Capture observer -----------------

class Capture:
    def __init__(self):
        self.events = []

    def notify(self, ev):
        self.events.append(ev)

    def of(self, cls):
        return [e for e in self.events if isinstance(e, cls)]


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def host(runner):
    return HostContext(runner=runner, distro_id="ubuntu", codename="jammy", version_id="22.04")


@pytest.fixture
def capture():
    return Capture()
