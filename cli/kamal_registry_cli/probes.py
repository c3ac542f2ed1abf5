from __future__ import annotations

import logging
import re
import shutil
import socket
import subprocess
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

_IP_RE = re.compile(r"\b\d{1,3}(?:\.\d{1,3}){3}\b")


@dataclass(frozen=True)
class HttpProbe:
    url: str
    status_code: int | None = None
    error: str | None = None

    @property
    def reachable(self) -> bool:
        # 401 means the registry answered and wants credentials.
        return self.status_code is not None and self.status_code < 500


def _extract_ips(text: str) -> list[str]:
    seen: list[str] = []
    for ip in _IP_RE.findall(text or ""):
        if ip not in seen:
            seen.append(ip)
    return seen


def _resolve_with_dig(domain: str) -> list[str] | None:
    if shutil.which("dig") is None:
        return None
    res = subprocess.run(["dig", "+short", domain, "A"], text=True, capture_output=True)
    if res.returncode != 0:
        logger.debug("dig failed for %s: %s", domain, (res.stderr or "").strip())
        return None
    return _extract_ips(res.stdout or "")


def _resolve_with_socket(domain: str) -> list[str]:
    try:
        infos = socket.getaddrinfo(domain, None, socket.AF_INET, socket.SOCK_STREAM)
    except socket.gaierror as exc:
        logger.debug("resolver failed for %s: %s", domain, exc)
        return []
    ips: list[str] = []
    for info in infos:
        ip = str(info[4][0])
        if ip not in ips:
            ips.append(ip)
    return ips


def resolve_domain(domain: str) -> list[str]:
    ips = _resolve_with_dig(domain)
    if ips:
        return ips
    return _resolve_with_socket(domain)


def probe_https(url: str, *, timeout: float) -> HttpProbe:
    try:
        resp = httpx.get(url, timeout=timeout, follow_redirects=True)
    except httpx.HTTPError as exc:
        return HttpProbe(url=url, error=str(exc) or exc.__class__.__name__)
    return HttpProbe(url=url, status_code=resp.status_code)
