# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/config/models.py

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator


BASE_PACKAGES = [
    "zsh", "sudo", "curl", "php-cli", "php-mbstring", "php-xml", "php-curl",
    "php-zip", "unzip", "composer", "nodejs", "npm", "gnupg", "git", "mc",
    "screen", "tmux", "ncdu", "nmap", "sqlite3", "lynx", "fzf", "z", "sshpass",
    "yt-dlp", "ffmpeg", "ctop", "glances", "htop", "links", "zip", "tar",
    "mlocate", "ufw", "fail2ban", "docker-compose-plugin", "rsync",
    "bash-completion", "mysql-server", "mysql-client",
]


class ServiceSpec(BaseModel):
    name: str
    state: Literal["running", "stopped"] = "running"


class DockerSpec(BaseModel):
    package: str = "docker.io"
    service: str = "docker"


class FirewallSpec(BaseModel):
    ssh_port: int = 22
    ssh_allow_from: List[str] = Field(
        default_factory=lambda: ["45.122.120.72", "115.241.91.27", "150.129.237.38"]
    )
    open_tcp_ports: List[int] = Field(default_factory=lambda: [80, 443, 2222, 3000, 8000])

    @field_validator("open_tcp_ports")
    @classmethod
    def _ports_in_range(cls, ports: List[int]) -> List[int]:
        bad = [p for p in ports if not 0 < p < 65536]
        if bad:
            raise ValueError(f"invalid TCP ports: {bad}")
        return ports


class SwapSpec(BaseModel):
    path: str = "/swapfile"
    size_gib: int = Field(3, gt=0)


class SysctlSpec(BaseModel):
    path: str = "/etc/sysctl.d/99-custom.conf"
    settings: Dict[str, str] = Field(
        default_factory=lambda: {"vm.swappiness": "10", "vm.vfs_cache_pressure": "50"}
    )


class MysqlTuningSpec(BaseModel):
    conf_dir: str = "/etc/mysql/mysql.conf.d"
    filename: str = "zz-custom-memory.cnf"
    service: str = "mysql"
    # left installed but off to save memory
    leave_stopped: bool = True
    settings: Dict[str, str] = Field(
        default_factory=lambda: {
            "innodb_buffer_pool_size": "128M",
            "innodb_log_file_size": "64M",
            "innodb_buffer_pool_instances": "1",
            "max_connections": "75",
            "tmp_table_size": "32M",
            "max_heap_table_size": "32M",
            "table_open_cache": "256",
            "thread_cache_size": "32",
            "performance_schema": "OFF",
        }
    )


class AptRepoSpec(BaseModel):
    """Third-party apt repository gated on a distro/codename matrix."""

    name: str = "mongodb-org"
    version: str = "7.0"
    key_url: str = "https://pgp.mongodb.com/server-{version}.asc"
    base_url: str = "https://repo.mongodb.org/apt"
    component: str = "multiverse"
    package: str = "mongodb-org"
    service: Optional[str] = "mongod"
    supported: Dict[str, List[str]] = Field(
        default_factory=lambda: {
            "ubuntu": ["noble", "jammy", "focal", "bionic"],
            "debian": ["bookworm", "bullseye"],
        }
    )

    @property
    def slug(self) -> str:
        return f"{self.name}-{self.version}"

    @property
    def list_path(self) -> str:
        return f"/etc/apt/sources.list.d/{self.slug}.list"

    @property
    def keyring_path(self) -> str:
        return f"/usr/share/keyrings/{self.slug}.gpg"


class UserSpec(BaseModel):
    name: str
    shell: str = "zsh"
    groups: List[str] = Field(default_factory=list)


class ShellSpec(BaseModel):
    oh_my_zsh_installer: str = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
    plugins: List[str] = Field(
        default_factory=lambda: ["git", "z", "fzf", "zsh-autosuggestions", "zsh-syntax-highlighting"]
    )
    plugin_repos: Dict[str, str] = Field(
        default_factory=lambda: {
            "zsh-autosuggestions": "https://github.com/zsh-users/zsh-autosuggestions",
            "zsh-syntax-highlighting": "https://github.com/zsh-users/zsh-syntax-highlighting",
        }
    )
    path_exports: List[str] = Field(
        default_factory=lambda: [
            'export PATH="$HOME/.config/composer/vendor/bin:$PATH"',
            'export PATH="$HOME/.npm-global/bin:$PATH"',
        ]
    )


class ToolingSpec(BaseModel):
    npm_prefix_dir: str = ".npm-global"
    npm_packages: List[str] = Field(default_factory=lambda: ["create-tanstack-app", "create-mantine-app"])
    composer_packages: List[str] = Field(default_factory=lambda: ["laravel/installer"])


class ProvisionConfig(BaseModel):
    packages: List[str] = Field(default_factory=lambda: list(BASE_PACKAGES))
    optional_packages: List[str] = Field(default_factory=lambda: ["ntop", "zsh-completions"])
    docker: Optional[DockerSpec] = Field(default_factory=DockerSpec)
    services: List[ServiceSpec] = Field(default_factory=lambda: [ServiceSpec(name="fail2ban")])
    timezone: str = "Asia/Kolkata"
    users: List[UserSpec] = Field(
        default_factory=lambda: [UserSpec(name="rahul", groups=["sudo"])]
    )
    # login shell for shell users that have no entry in `users`
    shell_login: str = "zsh"
    # accounts that get shells and per-user tooling, in order
    shell_users: List[str] = Field(default_factory=lambda: ["root", "rahul"])
    firewall: FirewallSpec = Field(default_factory=FirewallSpec)
    swap: SwapSpec = Field(default_factory=SwapSpec)
    sysctl: SysctlSpec = Field(default_factory=SysctlSpec)
    mysql: Optional[MysqlTuningSpec] = Field(default_factory=MysqlTuningSpec)
    apt_repos: List[AptRepoSpec] = Field(default_factory=lambda: [AptRepoSpec()])
    shell: ShellSpec = Field(default_factory=ShellSpec)
    tooling: ToolingSpec = Field(default_factory=ToolingSpec)

    def user(self, name: str) -> Optional[UserSpec]:
        return next((u for u in self.users if u.name == name), None)
