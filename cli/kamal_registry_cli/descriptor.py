from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigInvalidError, ConfigMissingError
from .path_utils import write_text_atomic

SERVICE_NAME = "registry"
SERVICE_IMAGE = "registry/bootstrap"
DEPLOY_TIMEOUT = 60
DRAIN_TIMEOUT = 30
BUILDER_ARCH = "amd64"

ACCESSORY_NAME = "registry"
ACCESSORY_IMAGE = "registry:2"
ACCESSORY_PORT = 5000
ACCESSORY_BIND = "127.0.0.1"
HTPASSWD_MOUNT = "/auth/htpasswd"
DATA_MOUNT = "/var/lib/registry"

PROXY_ALIAS = "proxy-registry"
HEALTH_CHECK_PATH = "/"

_HOST_FLAG_RE = re.compile(r"--host(?:=|\s+)[\"']?([^\"'\s]+)[\"']?")


@dataclass(frozen=True)
class DeploymentTarget:
    ip: str
    domain: str
    ssh_user: str


@dataclass(frozen=True)
class RegistrySecrets:
    registry_username: str
    registry_password: str
    bootstrap_password: str


def accessory_container() -> str:
    return f"{SERVICE_NAME}-{ACCESSORY_NAME}"


def proxy_alias_command(domain: str) -> str:
    return (
        "server exec docker exec kamal-proxy kamal-proxy deploy "
        f"{ACCESSORY_NAME} --target {accessory_container()}:{ACCESSORY_PORT} "
        f'--host "{domain}" --tls --buffer-requests --buffer-responses '
        f"--health-check-path {HEALTH_CHECK_PATH}"
    )


def extract_host_flag(command: str) -> str | None:
    match = _HOST_FLAG_RE.search(command or "")
    if not match:
        return None
    return match.group(1)


def build_descriptor(
        target: DeploymentTarget,
        secrets: RegistrySecrets,
        *,
        bootstrap_registry: str,
        htpasswd_path: str,
) -> dict[str, Any]:
    return {
        "service": SERVICE_NAME,
        "image": SERVICE_IMAGE,
        "deploy_timeout": DEPLOY_TIMEOUT,
        "drain_timeout": DRAIN_TIMEOUT,
        # Placeholder that answers 200 so Kamal's registry login passes
        # before the real registry exists.
        "registry": {
            "server": bootstrap_registry,
            "username": "bootstrap",
            "password": secrets.bootstrap_password,
        },
        "servers": {"web": [target.ip]},
        "builder": {"arch": BUILDER_ARCH},
        "aliases": {PROXY_ALIAS: proxy_alias_command(target.domain)},
        "accessories": {
            ACCESSORY_NAME: {
                "image": ACCESSORY_IMAGE,
                "host": target.ip,
                "port": f"{ACCESSORY_BIND}:{ACCESSORY_PORT}:{ACCESSORY_PORT}",
                "env": {
                    "clear": {
                        "REGISTRY_AUTH": "htpasswd",
                        "REGISTRY_AUTH_HTPASSWD_REALM": "Registry Realm",
                        "REGISTRY_AUTH_HTPASSWD_PATH": HTPASSWD_MOUNT,
                        "REGISTRY_HTTP_ADDR": f"0.0.0.0:{ACCESSORY_PORT}",
                    }
                },
                "files": [f"{htpasswd_path}:{HTPASSWD_MOUNT}"],
                "directories": [f"data:{DATA_MOUNT}"],
            }
        },
        "ssh": {"user": target.ssh_user},
    }


def render_descriptor(
        target: DeploymentTarget,
        secrets: RegistrySecrets,
        *,
        bootstrap_registry: str,
        htpasswd_path: str,
) -> str:
    data = build_descriptor(
        target,
        secrets,
        bootstrap_registry=bootstrap_registry,
        htpasswd_path=htpasswd_path,
    )
    dumped = yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
    return dumped if dumped.endswith("\n") else dumped + "\n"


def write_descriptor(path: Path, content: str) -> Path:
    return write_text_atomic(path, content, mode=0o600)


@dataclass(frozen=True)
class RegistryDescriptor:
    """Fields of a rendered deploy.yml that later commands rely on."""

    path: Path
    target: DeploymentTarget
    registry_server: str

    @property
    def registry_url(self) -> str:
        return f"https://{self.target.domain}"


def _require_mapping(data: Any, key: str) -> dict[str, Any]:
    value = data.get(key) if isinstance(data, dict) else None
    if not isinstance(value, dict):
        raise ConfigInvalidError(f"Missing or invalid `{key}` section.")
    return value


def parse_descriptor(text: str, *, path: Path) -> RegistryDescriptor:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigInvalidError(f"{path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigInvalidError(f"{path} must contain a mapping.")

    service = str(data.get("service") or "").strip()
    if not service:
        raise ConfigInvalidError("Missing `service`.")

    registry = _require_mapping(data, "registry")
    registry_server = str(registry.get("server") or "").strip()
    if not registry_server:
        raise ConfigInvalidError("Missing `registry.server`.")

    servers = _require_mapping(data, "servers")
    web = servers.get("web")
    if not isinstance(web, list) or not web:
        raise ConfigInvalidError("`servers.web` must list at least one host.")
    ip = str(web[0]).strip()

    aliases = _require_mapping(data, "aliases")
    alias_command = str(aliases.get(PROXY_ALIAS) or "")
    domain = extract_host_flag(alias_command)
    if not domain:
        raise ConfigInvalidError(f"`aliases.{PROXY_ALIAS}` has no --host value.")

    accessories = _require_mapping(data, "accessories")
    accessory = accessories.get(ACCESSORY_NAME)
    if not isinstance(accessory, dict):
        raise ConfigInvalidError(f"Missing `accessories.{ACCESSORY_NAME}`.")

    ssh_section = data.get("ssh") if isinstance(data.get("ssh"), dict) else {}
    ssh_user = str(ssh_section.get("user") or "root").strip()

    return RegistryDescriptor(
        path=path,
        target=DeploymentTarget(ip=ip, domain=domain, ssh_user=ssh_user),
        registry_server=registry_server,
    )


def load_descriptor(path: Path) -> RegistryDescriptor:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigMissingError(str(path)) from None
    return parse_descriptor(text, path=Path(path))
