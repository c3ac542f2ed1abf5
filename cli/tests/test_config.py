import pytest

from kamal_registry_cli import config


def _isolate(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(config, "user_config_dir", lambda _name: str(tmp_path))
    for name in (config.ENV_KAMAL_BIN, config.ENV_CONFIG_DIR, config.ENV_SSH_USER):
        monkeypatch.delenv(name, raising=False)


def test_load_config_defaults_without_file(tmp_path, monkeypatch) -> None:
    _isolate(monkeypatch, tmp_path)
    cfg = config.load_config()
    assert cfg.kamal_bin == "kamal"
    assert cfg.deploy_path.as_posix() == "config/deploy.yml"
    assert cfg.htpasswd_path.as_posix() == "config/htpasswd"


def test_save_and_load_round_trip(tmp_path, monkeypatch) -> None:
    _isolate(monkeypatch, tmp_path)
    cfg = config.default_config()
    cfg.ssh_user = "deploy"
    cfg.readiness_timeout = 120.0

    path = config.save_config(cfg)
    loaded = config.load_config()

    assert path.endswith("config.toml")
    assert loaded.ssh_user == "deploy"
    assert loaded.readiness_timeout == 120.0
    assert (tmp_path / "config.toml").stat().st_mode & 0o777 == 0o600


def test_env_overrides_file(tmp_path, monkeypatch) -> None:
    _isolate(monkeypatch, tmp_path)
    config.save_config(config.default_config())
    monkeypatch.setenv(config.ENV_KAMAL_BIN, "bin/kamal")
    monkeypatch.setenv(config.ENV_CONFIG_DIR, "deploy/config")

    cfg = config.load_config()

    assert cfg.kamal_bin == "bin/kamal"
    assert cfg.deploy_path.as_posix() == "deploy/config/deploy.yml"


def test_from_toml_ignores_invalid_timeouts() -> None:
    cfg = config.from_toml({"readiness_timeout": "soon", "probe_timeout": -3})
    assert cfg.readiness_timeout == config.DEFAULT_READINESS_TIMEOUT
    assert cfg.probe_timeout == config.DEFAULT_PROBE_TIMEOUT


def test_set_value_validates() -> None:
    cfg = config.default_config()
    config.set_value(cfg, "probe_timeout", "2.5")
    assert cfg.probe_timeout == 2.5
    with pytest.raises(KeyError):
        config.set_value(cfg, "nope", "x")
    with pytest.raises(ValueError):
        config.set_value(cfg, "ssh_user", "  ")
    with pytest.raises(ValueError):
        config.set_value(cfg, "readiness_timeout", "0")


def test_default_bootstrap_registry_is_bare_registry_host() -> None:
    cfg = config.default_config()
    assert cfg.bootstrap_registry == "registry.k8s.io"
    config.set_value(cfg, "bootstrap_registry", config.DEFAULT_BOOTSTRAP_REGISTRY)
    assert cfg.bootstrap_registry == config.DEFAULT_BOOTSTRAP_REGISTRY


@pytest.mark.parametrize("value", ["https://registry.k8s.io", "httpbin.org/status/200"])
def test_bootstrap_registry_rejects_scheme_or_path(value) -> None:
    with pytest.raises(ValueError, match="bare registry host"):
        config.set_value(config.default_config(), "bootstrap_registry", value)
