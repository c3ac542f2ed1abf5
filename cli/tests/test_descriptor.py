import pytest
import yaml

from kamal_registry_cli import descriptor
from kamal_registry_cli.descriptor import DeploymentTarget, RegistrySecrets
from kamal_registry_cli.errors import ConfigInvalidError, ConfigMissingError


def _target() -> DeploymentTarget:
    return DeploymentTarget(ip="203.0.113.10", domain="registry.example.com", ssh_user="deploy")


def _secrets(password: str = "pw-1", bootstrap: str = "boot-1") -> RegistrySecrets:
    return RegistrySecrets(registry_username="registry", registry_password=password, bootstrap_password=bootstrap)


def _render(secrets: RegistrySecrets | None = None) -> str:
    return descriptor.render_descriptor(
        _target(),
        secrets or _secrets(),
        bootstrap_registry="registry.k8s.io",
        htpasswd_path="config/htpasswd",
    )


def test_render_descriptor_has_expected_top_level_keys_in_order() -> None:
    data = yaml.safe_load(_render())
    assert list(data) == [
        "service",
        "image",
        "deploy_timeout",
        "drain_timeout",
        "registry",
        "servers",
        "builder",
        "aliases",
        "accessories",
        "ssh",
    ]
    assert data["servers"] == {"web": ["203.0.113.10"]}
    assert data["ssh"] == {"user": "deploy"}
    assert data["registry"]["server"] == "registry.k8s.io"


def test_render_descriptor_binds_accessory_to_loopback_with_htpasswd() -> None:
    accessory = yaml.safe_load(_render())["accessories"]["registry"]
    assert accessory["host"] == "203.0.113.10"
    assert accessory["port"] == "127.0.0.1:5000:5000"
    assert accessory["env"]["clear"]["REGISTRY_AUTH"] == "htpasswd"
    assert accessory["files"] == ["config/htpasswd:/auth/htpasswd"]
    assert accessory["directories"] == ["data:/var/lib/registry"]


def test_alias_registers_domain_with_tls_and_health_check() -> None:
    alias = yaml.safe_load(_render())["aliases"]["proxy-registry"]
    assert '--host "registry.example.com"' in alias
    assert "--tls" in alias
    assert "--buffer-requests" in alias
    assert "--health-check-path" in alias
    assert "--target registry-registry:5000" in alias


def test_render_is_deterministic_apart_from_secrets() -> None:
    first = _render(_secrets("a", "b"))
    second = _render(_secrets("a", "b"))
    third = _render(_secrets("c", "d"))
    assert first == second
    assert first != third
    assert first.replace("password: b", "password: d") == third


def test_parse_round_trips_target() -> None:
    parsed = descriptor.parse_descriptor(_render(), path=descriptor.Path("config/deploy.yml"))
    assert parsed.target == _target()
    assert parsed.registry_url == "https://registry.example.com"
    assert parsed.registry_server == "registry.k8s.io"


@pytest.mark.parametrize(
    "command",
    [
        'server exec docker exec kamal-proxy kamal-proxy deploy registry --host "registry.example.com" --tls',
        "kamal-proxy deploy registry --host registry.example.com --tls",
        "kamal-proxy deploy registry --host='registry.example.com'",
    ],
)
def test_extract_host_flag_handles_quoting(command) -> None:
    assert descriptor.extract_host_flag(command) == "registry.example.com"


def test_extract_host_flag_missing() -> None:
    assert descriptor.extract_host_flag("kamal-proxy deploy registry --tls") is None


def test_parse_rejects_missing_alias_host() -> None:
    data = yaml.safe_load(_render())
    data["aliases"]["proxy-registry"] = "server exec true"
    with pytest.raises(ConfigInvalidError, match="--host"):
        descriptor.parse_descriptor(yaml.safe_dump(data), path=descriptor.Path("deploy.yml"))


def test_parse_rejects_non_mapping() -> None:
    with pytest.raises(ConfigInvalidError):
        descriptor.parse_descriptor("- just\n- a list\n", path=descriptor.Path("deploy.yml"))


def test_load_descriptor_missing_file(tmp_path) -> None:
    with pytest.raises(ConfigMissingError) as exc:
        descriptor.load_descriptor(tmp_path / "config" / "deploy.yml")
    assert "kamal-registry setup" in str(exc.value)


def test_write_descriptor_overwrites_atomically(tmp_path) -> None:
    path = tmp_path / "config" / "deploy.yml"
    descriptor.write_descriptor(path, _render(_secrets("a", "b")))
    descriptor.write_descriptor(path, _render(_secrets("c", "d")))

    assert "password: d" in path.read_text(encoding="utf-8")
    assert [p.name for p in path.parent.iterdir()] == ["deploy.yml"]
