from __future__ import annotations

import logging
import re
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from . import console
from .descriptor import ACCESSORY_NAME, PROXY_ALIAS
from .errors import PrerequisiteError, StageFailedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stage:
    label: str
    args: tuple[str, ...]


SERVER_BOOTSTRAP = Stage("Bootstrap server", ("server", "bootstrap"))
PROXY_BOOT = Stage("Boot kamal-proxy", ("proxy", "boot"))
ACCESSORY_BOOT = Stage("Boot registry accessory", ("accessory", "boot", ACCESSORY_NAME))
PROXY_REGISTER = Stage("Register registry with kamal-proxy", (PROXY_ALIAS,))

APP_DETAILS = ("details",)
PROXY_DETAILS = ("proxy", "details")
ACCESSORY_DETAILS = ("accessory", "details", ACCESSORY_NAME)
ACCESSORY_LOGS = ("accessory", "logs", ACCESSORY_NAME, "-f")

_UP_RE = re.compile(r"\bup\b")


@dataclass
class KamalRunner:
    kamal_bin: str
    config_file: Path
    dry_run: bool = False

    def command(self, args: tuple[str, ...] | list[str]) -> list[str]:
        return [self.kamal_bin, *args, "-c", str(self.config_file)]

    def ensure_available(self) -> None:
        if self.dry_run:
            return
        if shutil.which(self.kamal_bin) is None:
            raise PrerequisiteError(
                f"`{self.kamal_bin}` not found. Install Kamal (gem install kamal) "
                "or point the `kamal_bin` setting at it."
            )

    def _display(self, cmd: list[str]) -> str:
        return " ".join(shlex.quote(part) for part in cmd)

    def run_stage(self, stage: Stage) -> None:
        cmd = self.command(stage.args)
        console.step(stage.label)
        if self.dry_run:
            console.info(f"[dry-run] {self._display(cmd)}")
            return
        logger.debug("running stage %r: %s", stage.label, self._display(cmd))
        res = subprocess.run(cmd)
        if res.returncode != 0:
            raise StageFailedError(stage.label, res.returncode)
        console.ok(stage.label)

    def capture(self, args: tuple[str, ...] | list[str]) -> subprocess.CompletedProcess:
        cmd = self.command(args)
        if self.dry_run:
            console.info(f"[dry-run] {self._display(cmd)}")
            return subprocess.CompletedProcess(cmd, 0, "", "")
        logger.debug("running: %s", self._display(cmd))
        try:
            return subprocess.run(
                cmd,
                text=True,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as exc:
            return subprocess.CompletedProcess(cmd, 127, "", str(exc))

    def follow(self, args: tuple[str, ...] | list[str]) -> int:
        cmd = self.command(args)
        if self.dry_run:
            console.info(f"[dry-run] {self._display(cmd)}")
            return 0
        logger.debug("streaming: %s", self._display(cmd))
        return subprocess.call(cmd)


def accessory_running(runner: KamalRunner) -> bool:
    res = runner.capture(ACCESSORY_DETAILS)
    if res.returncode != 0:
        return False
    output = (res.stdout or "").lower()
    if runner.dry_run:
        return True
    # `docker ps` style status column, e.g. "Up 3 seconds"
    return bool(_UP_RE.search(output))
