from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass

from . import console

DEFAULT_CONNECT_TIMEOUT = 10


@dataclass
class SshTarget:
    host: str
    user: str
    port: int = 22
    key_path: str | None = None
    dry_run: bool = False

    @property
    def destination(self) -> str:
        return f"{self.user}@{self.host}"


def _base_ssh_cmd(target: SshTarget, *, connect_timeout: int = DEFAULT_CONNECT_TIMEOUT) -> list[str]:
    cmd = [
        "ssh",
        "-p",
        str(target.port),
        "-o",
        "BatchMode=yes",
        "-o",
        "StrictHostKeyChecking=accept-new",
        "-o",
        f"ConnectTimeout={connect_timeout}",
    ]
    if target.key_path:
        cmd += ["-i", target.key_path]
    return cmd


def run_remote(target: SshTarget, command: str) -> subprocess.CompletedProcess:
    cmd = _base_ssh_cmd(target) + [target.destination, command]
    if target.dry_run:
        console.info(f"[dry-run] ssh {target.destination}: {command}")
        return subprocess.CompletedProcess(cmd, 0, "", "")
    if shutil.which("ssh") is None:
        return subprocess.CompletedProcess(cmd, 127, "", "ssh client not found")
    return subprocess.run(cmd, text=True, capture_output=True, encoding="utf-8", errors="replace")


def check_reachable(target: SshTarget) -> tuple[bool, str]:
    """Return (ok, detail) for a non-interactive `ssh user@host true`."""
    res = run_remote(target, "true")
    if res.returncode == 0:
        return True, ""
    detail = (res.stderr or res.stdout or "").strip()
    return False, detail or f"ssh exited with code {res.returncode}"
