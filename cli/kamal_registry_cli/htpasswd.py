from __future__ import annotations

import logging
import os
import platform
import shutil
import subprocess
from pathlib import Path

from . import console
from .errors import PrerequisiteError
from .path_utils import write_text_atomic

logger = logging.getLogger(__name__)

HTPASSWD_BIN = "htpasswd"

# (package manager binary, install command) in probe order
_LINUX_INSTALLERS: tuple[tuple[str, list[str]], ...] = (
    ("apt-get", ["apt-get", "install", "-y", "apache2-utils"]),
    ("dnf", ["dnf", "install", "-y", "httpd-tools"]),
    ("yum", ["yum", "install", "-y", "httpd-tools"]),
    ("apk", ["apk", "add", "--no-cache", "apache2-utils"]),
    ("pacman", ["pacman", "-S", "--noconfirm", "apache"]),
)
_MACOS_INSTALLER = ("brew", ["brew", "install", "httpd"])


def _command_exists(cmd: str) -> bool:
    return shutil.which(cmd) is not None


def _needs_sudo() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() != 0 and _command_exists("sudo")


def install_command() -> list[str] | None:
    system = platform.system()
    if system == "Darwin":
        manager, cmd = _MACOS_INSTALLER
        return list(cmd) if _command_exists(manager) else None
    if system != "Linux":
        return None
    for manager, cmd in _LINUX_INSTALLERS:
        if _command_exists(manager):
            return ["sudo", *cmd] if _needs_sudo() else list(cmd)
    return None


def ensure_htpasswd() -> str:
    path = shutil.which(HTPASSWD_BIN)
    if path:
        return path
    console.warn("htpasswd not found; trying to install it.")
    cmd = install_command()
    if cmd is None:
        raise PrerequisiteError(
            f"htpasswd is required and no installer is known for {platform.system() or 'this OS'}. "
            "Install apache2-utils (Debian/Ubuntu), httpd-tools (RHEL/Fedora) or httpd (Homebrew) and re-run."
        )
    logger.debug("installing htpasswd: %s", " ".join(cmd))
    res = subprocess.run(cmd, text=True, capture_output=True)
    if res.returncode != 0:
        raise PrerequisiteError(
            f"Failed to install htpasswd with `{' '.join(cmd)}`.",
            stdout=res.stdout,
            stderr=res.stderr,
        )
    path = shutil.which(HTPASSWD_BIN)
    if not path:
        raise PrerequisiteError("htpasswd is still missing after installation.")
    console.ok("htpasswd installed.")
    return path


def generate_entry(username: str, password: str, *, htpasswd_bin: str = HTPASSWD_BIN) -> str:
    if not username:
        raise ValueError("username must be provided for registry auth")
    if not password:
        raise ValueError("password must be provided for registry auth")
    res = subprocess.run(
        [htpasswd_bin, "-nbB", username, password],
        text=True,
        capture_output=True,
    )
    if res.returncode != 0:
        raise PrerequisiteError("htpasswd failed to hash the registry password.", stdout=res.stdout, stderr=res.stderr)
    line = next((ln.strip() for ln in (res.stdout or "").splitlines() if ln.strip()), "")
    if not line.startswith(f"{username}:"):
        raise PrerequisiteError("htpasswd returned an unexpected entry.", stdout=res.stdout, stderr=res.stderr)
    return line + "\n"


def write_htpasswd(path: Path, entry: str) -> Path:
    return write_text_atomic(path, entry, mode=0o600)
