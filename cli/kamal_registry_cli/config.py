from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomli_w
from platformdirs import user_config_dir

APP_NAME = "kamal-registry"
CONFIG_FILENAME = "config.toml"

DEFAULT_KAMAL_BIN = "kamal"
DEFAULT_CONFIG_DIR = "config"
DEFAULT_SSH_USER = "root"
DEFAULT_REGISTRY_USERNAME = "registry"
DEFAULT_BOOTSTRAP_REGISTRY = "registry.k8s.io"
DEFAULT_READINESS_TIMEOUT = 60.0
DEFAULT_PROBE_TIMEOUT = 10.0

ENV_KAMAL_BIN = "KAMAL_REGISTRY_KAMAL_BIN"
ENV_CONFIG_DIR = "KAMAL_REGISTRY_CONFIG_DIR"
ENV_SSH_USER = "KAMAL_REGISTRY_SSH_USER"

DEPLOY_FILENAME = "deploy.yml"
HTPASSWD_FILENAME = "htpasswd"

SETTING_KEYS = (
    "kamal_bin",
    "config_dir",
    "ssh_user",
    "registry_username",
    "bootstrap_registry",
    "readiness_timeout",
    "probe_timeout",
)


@dataclass
class AppConfig:
    kamal_bin: str = DEFAULT_KAMAL_BIN
    config_dir: str = DEFAULT_CONFIG_DIR
    ssh_user: str = DEFAULT_SSH_USER
    registry_username: str = DEFAULT_REGISTRY_USERNAME
    bootstrap_registry: str = DEFAULT_BOOTSTRAP_REGISTRY
    readiness_timeout: float = DEFAULT_READINESS_TIMEOUT
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT

    @property
    def deploy_path(self) -> Path:
        return Path(self.config_dir) / DEPLOY_FILENAME

    @property
    def htpasswd_path(self) -> Path:
        return Path(self.config_dir) / HTPASSWD_FILENAME


def config_path() -> str:
    return f"{user_config_dir(APP_NAME)}/{CONFIG_FILENAME}"


def default_config() -> AppConfig:
    return AppConfig()


def ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)


def to_toml(cfg: AppConfig) -> dict[str, Any]:
    return {
        "kamal_bin": cfg.kamal_bin,
        "config_dir": cfg.config_dir,
        "ssh_user": cfg.ssh_user,
        "registry_username": cfg.registry_username,
        "bootstrap_registry": cfg.bootstrap_registry,
        "readiness_timeout": cfg.readiness_timeout,
        "probe_timeout": cfg.probe_timeout,
    }


def _as_float(raw: Any, default: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def from_toml(data: dict[str, Any]) -> AppConfig:
    cfg = default_config()
    kamal_bin = str(data.get("kamal_bin") or "").strip()
    if kamal_bin:
        cfg.kamal_bin = kamal_bin
    config_dir = str(data.get("config_dir") or "").strip()
    if config_dir:
        cfg.config_dir = config_dir
    ssh_user = str(data.get("ssh_user") or "").strip()
    if ssh_user:
        cfg.ssh_user = ssh_user
    registry_username = str(data.get("registry_username") or "").strip()
    if registry_username:
        cfg.registry_username = registry_username
    bootstrap_registry = str(data.get("bootstrap_registry") or "").strip()
    if bootstrap_registry:
        cfg.bootstrap_registry = bootstrap_registry
    cfg.readiness_timeout = _as_float(data.get("readiness_timeout"), DEFAULT_READINESS_TIMEOUT)
    cfg.probe_timeout = _as_float(data.get("probe_timeout"), DEFAULT_PROBE_TIMEOUT)
    return cfg


def apply_env(cfg: AppConfig) -> AppConfig:
    kamal_bin = os.getenv(ENV_KAMAL_BIN, "").strip()
    if kamal_bin:
        cfg.kamal_bin = kamal_bin
    config_dir = os.getenv(ENV_CONFIG_DIR, "").strip()
    if config_dir:
        cfg.config_dir = config_dir
    ssh_user = os.getenv(ENV_SSH_USER, "").strip()
    if ssh_user:
        cfg.ssh_user = ssh_user
    return cfg


def load_config() -> AppConfig:
    path = config_path()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        cfg = from_toml(data)
    except FileNotFoundError:
        cfg = default_config()
    return apply_env(cfg)


def load_file_config() -> AppConfig:
    """Load settings as stored on disk, without environment overrides."""
    try:
        with open(config_path(), "rb") as f:
            return from_toml(tomllib.load(f))
    except FileNotFoundError:
        return default_config()


def set_value(cfg: AppConfig, key: str, value: str) -> None:
    k = key.strip().lower()
    if k not in SETTING_KEYS:
        raise KeyError(key)
    if k in {"readiness_timeout", "probe_timeout"}:
        number = float(value)
        if number <= 0:
            raise ValueError(f"{k} must be positive.")
        setattr(cfg, k, number)
        return
    clean = value.strip()
    if not clean:
        raise ValueError(f"{k} cannot be empty.")
    if k == "bootstrap_registry" and "/" in clean:
        raise ValueError("expected a bare registry host, e.g. registry.k8s.io")
    setattr(cfg, k, clean)


def save_config(cfg: AppConfig) -> str:
    path = config_path()
    ensure_parent_dir(path)
    with open(path, "wb") as f:
        f.write(tomli_w.dumps(to_toml(cfg)).encode("utf-8"))
    os.chmod(path, 0o600)
    return path
