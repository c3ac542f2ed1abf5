from __future__ import annotations

import logging
from typing import Callable

import typer

from .. import console
from ..config import load_config
from ..descriptor import RegistryDescriptor
from ..errors import KamalRegistryError, PrerequisiteError, ReadinessTimeout
from ..kamal import (
    ACCESSORY_BOOT,
    PROXY_BOOT,
    PROXY_REGISTER,
    SERVER_BOOTSTRAP,
    KamalRunner,
    accessory_running,
)
from ..probes import probe_https
from ..readiness import wait_until
from ..ssh import SshTarget, check_reachable
from .common import fail, make_runner, require_descriptor

logger = logging.getLogger(__name__)

PRE_REGISTER_STAGES = (SERVER_BOOTSTRAP, PROXY_BOOT, ACCESSORY_BOOT)


def run_pipeline(runner: KamalRunner, *, wait_for_accessory: Callable[[], None]) -> None:
    """Run the deploy stages in order, stopping at the first failure."""
    for stage in PRE_REGISTER_STAGES:
        runner.run_stage(stage)
    wait_for_accessory()
    runner.run_stage(PROXY_REGISTER)


def _preflight_ssh(descriptor: RegistryDescriptor, *, port: int, key_path: str | None, dry_run: bool) -> None:
    target = SshTarget(
        host=descriptor.target.ip,
        user=descriptor.target.ssh_user,
        port=port,
        key_path=key_path,
        dry_run=dry_run,
    )
    console.info(f"Checking SSH access to {target.destination}...")
    reachable, detail = check_reachable(target)
    if not reachable:
        console.err(f"Cannot reach {target.destination} over SSH: {detail}")
        console.info("Fix SSH access (keys, user, firewall) or re-run with --skip-preflight.")
        raise typer.Exit(code=1)
    console.ok("SSH access confirmed.")


def check_bootstrap_registry(descriptor: RegistryDescriptor, *, timeout: float) -> None:
    """Kamal logs in to `registry.server` before booting anything; its /v2/ must answer 200."""
    url = f"https://{descriptor.registry_server}/v2/"
    console.info(f"Checking bootstrap registry {url}...")
    result = probe_https(url, timeout=timeout)
    if result.status_code == 200:
        console.ok("Bootstrap registry answers 200.")
        return
    detail = result.error or f"HTTP {result.status_code}"
    raise PrerequisiteError(
        f"Bootstrap registry {descriptor.registry_server} did not answer 200 at /v2/ ({detail}). "
        "Point the `bootstrap_registry` setting at a reachable registry and re-run setup."
    )


def verify_registry(descriptor: RegistryDescriptor, *, timeout: float, probe_timeout: float) -> bool:
    url = f"{descriptor.registry_url}/v2/"
    console.info(f"Waiting for {url} to answer...")

    def _reachable() -> bool:
        result = probe_https(url, timeout=probe_timeout)
        logger.debug("probe %s -> status=%s error=%s", url, result.status_code, result.error)
        return result.reachable

    try:
        wait_until(_reachable, what="registry HTTPS endpoint", timeout=timeout)
    except ReadinessTimeout as exc:
        console.warn(f"{exc}. DNS or certificate issuance may still be propagating; try `kamal-registry test` later.")
        return False
    console.ok(f"Registry is reachable at {descriptor.registry_url}")
    return True


def deploy(
        dry_run: bool = typer.Option(False, "--dry-run", help="Print Kamal commands without running them."),
        skip_preflight: bool = typer.Option(False, "--skip-preflight", help="Skip the SSH and bootstrap registry checks."),
        skip_verify: bool = typer.Option(False, "--skip-verify", help="Skip the post-deploy HTTPS check."),
        readiness_timeout: float | None = typer.Option(
            None,
            "--readiness-timeout",
            min=1.0,
            help="Seconds to wait for the registry accessory and HTTPS endpoint.",
        ),
        ssh_port: int = typer.Option(22, "--ssh-port", help="SSH port used by the preflight check."),
        ssh_key: str | None = typer.Option(None, "--ssh-key", help="SSH private key for the preflight check."),
):
    """Boot kamal-proxy and the registry accessory, then route the domain to it."""
    cfg = load_config()
    descriptor = require_descriptor(cfg)
    timeout = readiness_timeout or cfg.readiness_timeout
    runner = make_runner(cfg, dry_run=dry_run)

    console.rule("[bold]Kamal Registry Deploy[/]")
    try:
        runner.ensure_available()
    except KamalRegistryError as exc:
        fail(exc)

    if not skip_preflight:
        _preflight_ssh(descriptor, port=ssh_port, key_path=ssh_key, dry_run=dry_run)
        if not dry_run:
            try:
                check_bootstrap_registry(descriptor, timeout=cfg.probe_timeout)
            except KamalRegistryError as exc:
                fail(exc)

    def _wait_for_accessory() -> None:
        console.info(f"Waiting for the registry accessory (up to {timeout:g}s)...")
        wait_until(lambda: accessory_running(runner), what="registry accessory", timeout=timeout)
        console.ok("Registry accessory is running.")

    try:
        run_pipeline(runner, wait_for_accessory=_wait_for_accessory)
    except KamalRegistryError as exc:
        fail(exc)

    if dry_run:
        console.ok("Dry run complete.")
        return

    if not skip_verify:
        verify_registry(descriptor, timeout=timeout, probe_timeout=cfg.probe_timeout)

    console.print("")
    console.info(f"Log in with: docker login {descriptor.target.domain}")
