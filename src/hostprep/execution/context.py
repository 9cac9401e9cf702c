# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from dataclasses import dataclass


@dataclass(frozen=True)
class ExecutionContext:
    """
    controls which account a command runs as
    """

    user: str = "root"
    # impersonated commands go through `bash -lc`
    login_shell: bool = True

    @property
    def is_root(self) -> bool:
        return self.user == "root"
