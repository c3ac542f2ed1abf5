from __future__ import annotations

from dataclasses import dataclass

from .. import console
from ..config import load_config
from ..descriptor import RegistryDescriptor
from ..kamal import KamalRunner, accessory_running
from ..probes import probe_https, resolve_domain
from .common import make_runner, require_descriptor


@dataclass
class CheckReport:
    domain: str
    resolved_ips: list[str]
    https_status: int | None
    https_error: str | None
    service_running: bool

    @property
    def dns_ok(self) -> bool:
        return bool(self.resolved_ips)

    @property
    def https_ok(self) -> bool:
        return self.https_status is not None and self.https_status < 500

    def failures(self) -> list[str]:
        failed: list[str] = []
        if not self.dns_ok:
            failed.append(f"DNS ({self.domain} does not resolve)")
        if not self.https_ok:
            failed.append(f"HTTPS ({self.https_error or f'HTTP {self.https_status}'})")
        if not self.service_running:
            failed.append("registry accessory")
        return failed


def check_dns(descriptor: RegistryDescriptor) -> list[str]:
    domain = descriptor.target.domain
    console.info(f"DNS lookup for {domain}...")
    ips = resolve_domain(domain)
    if not ips:
        console.warn(f"{domain} does not resolve yet.")
        return ips
    if descriptor.target.ip in ips:
        console.ok(f"{domain} resolves to {', '.join(ips)}")
    else:
        console.warn(f"{domain} resolves to {', '.join(ips)}, expected {descriptor.target.ip}.")
    return ips


def check_https(descriptor: RegistryDescriptor, *, timeout: float) -> tuple[int | None, str | None]:
    url = f"{descriptor.registry_url}/v2/"
    console.info(f"HTTPS probe {url}...")
    result = probe_https(url, timeout=timeout)
    if result.error:
        console.warn(f"HTTPS probe failed: {result.error}")
    elif result.reachable:
        console.ok(f"HTTPS reachable (HTTP {result.status_code}).")
    else:
        console.warn(f"HTTPS probe returned HTTP {result.status_code}.")
    return result.status_code, result.error


def check_service(runner: KamalRunner) -> bool:
    console.info("Registry accessory status...")
    running = accessory_running(runner)
    if running:
        console.ok("Registry accessory is running.")
        return True
    console.warn("Registry accessory is not running or status is unavailable.")
    return False


def run_checks(descriptor: RegistryDescriptor, runner: KamalRunner, *, timeout: float) -> CheckReport:
    ips = check_dns(descriptor)
    status_code, error = check_https(descriptor, timeout=timeout)
    running = check_service(runner)
    return CheckReport(
        domain=descriptor.target.domain,
        resolved_ips=ips,
        https_status=status_code,
        https_error=error,
        service_running=running,
    )


def check() -> None:
    """Check DNS, HTTPS reachability and accessory status for the registry."""
    cfg = load_config()
    descriptor = require_descriptor(cfg)
    console.rule(f"[bold]Registry checks: {descriptor.target.domain}[/]")
    report = run_checks(descriptor, make_runner(cfg), timeout=cfg.probe_timeout)
    failed = report.failures()
    if not failed:
        console.ok("All checks passed.")
    else:
        console.warn(f"{3 - len(failed)}/3 checks passed. Failing: {', '.join(failed)}.")
