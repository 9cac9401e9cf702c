# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/execution/ssh_runner.py

from __future__ import annotations

import logging
import os
import shlex
from pathlib import Path
from typing import List, Optional, Tuple, Union

import paramiko

from .runner import BaseRunner, _split_owner
from ..errors import CommandError, DirectiveError

log = logging.getLogger("hostprep")


class SshRunner(BaseRunner):
    """
    Runs directives against a remote host over one SSH connection.

    Commands go through ``sudo -n`` unless the SSH user is root. Files are
    uploaded to /tmp over SFTP, installed next to the target and renamed.
    """

    label = "ssh"

    def __init__(
        self,
        client: paramiko.SSHClient,
        *,
        address: str,
        username: str = "root",
        cmd_timeout: Optional[float] = None,
    ):
        self.client = client
        self.address = address
        self.username = username
        self.cmd_timeout = cmd_timeout

    def describe(self) -> str:
        return f"{self.username}@{self.address}"

    def wrap(self, argv, *, ctx=None, env=None) -> List[str]:
        final = super().wrap(argv, ctx=ctx, env=env)
        if self.username != "root":
            return ["sudo", "-n", *final]
        return final

    def _exec(self, argv: List[str], *, input: Optional[bytes] = None) -> Tuple[int, bytes, bytes]:
        try:
            stdin, stdout, stderr = self.client.exec_command(shlex.join(argv), timeout=self.cmd_timeout)
            if input is not None:
                stdin.write(input)
                stdin.flush()
            stdin.channel.shutdown_write()
            out = stdout.read()
            err = stderr.read()
            rc = stdout.channel.recv_exit_status()
        except paramiko.SSHException as e:
            # 255 is what ssh(1) reports for transport failures
            raise CommandError(argv, 255, stderr=f"ssh {self.describe()}: {e}") from e
        return rc, out, err

    def write_file(self, path: Union[str, Path], data: bytes, *, mode: int = 0o644, owner: Optional[str] = None) -> None:
        path = str(path)
        tmp_remote = f"/tmp/.hostprep_tmp_{os.getpid()}_{next(_counter)}"
        staged = f"{path}.hostprep-new"

        try:
            sftp = self.client.open_sftp()
            try:
                with sftp.open(tmp_remote, "wb") as f:
                    f.write(data)
            finally:
                sftp.close()
        except paramiko.SSHException as e:
            raise DirectiveError(f"upload of {path} to {self.describe()} failed: {e}") from e

        user, group = _split_owner(owner or "root")
        try:
            self.run(["install", "-m", f"{mode:o}", "-o", user, "-g", group, tmp_remote, staged], check=True)
            self.run(["mv", "-f", staged, path], check=True)
        finally:
            self.run(["rm", "-f", tmp_remote, staged])
        log.debug("[%s] wrote %s:%s (%d bytes, mode %o)", self.label, self.address, path, len(data), mode)

    def close(self) -> None:
        self.client.close()


def open_ssh(
    address: str,
    *,
    username: str = "root",
    port: int = 22,
    key_path: Optional[Union[str, Path]] = None,
    password: Optional[str] = None,
    connect_timeout: float = 20.0,
) -> SshRunner:
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    pkey = None
    if key_path:
        for key_cls in (
            paramiko.Ed25519Key,
            paramiko.RSAKey,
            paramiko.ECDSAKey,
        ):
            try:
                pkey = key_cls.from_private_key_file(str(key_path))
                break
            except paramiko.SSHException:
                continue

    client.connect(
        hostname=address,
        port=port,
        username=username,
        password=password if not pkey else None,
        pkey=pkey,
        timeout=connect_timeout,
        allow_agent=True,
        look_for_keys=pkey is None,
    )

    return SshRunner(client, address=address, username=username)


# simple counter for unique temp names
def _counter_gen():
    i = 0
    while True:
        i += 1
        yield i
_counter = _counter_gen()
