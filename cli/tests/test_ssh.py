import subprocess

from kamal_registry_cli import ssh


def test_base_ssh_cmd_is_non_interactive() -> None:
    target = ssh.SshTarget(host="203.0.113.10", user="deploy", port=2222, key_path="~/.ssh/id_ed25519")

    cmd = ssh._base_ssh_cmd(target)

    assert cmd[:3] == ["ssh", "-p", "2222"]
    assert "BatchMode=yes" in cmd
    assert "StrictHostKeyChecking=accept-new" in cmd
    assert cmd[-2:] == ["-i", "~/.ssh/id_ed25519"]


def test_check_reachable_dry_run_skips_ssh(monkeypatch) -> None:
    def _boom(*_args, **_kwargs):
        raise AssertionError("ssh must not run in dry-run mode")

    monkeypatch.setattr(ssh.subprocess, "run", _boom)
    target = ssh.SshTarget(host="203.0.113.10", user="root", dry_run=True)

    assert ssh.check_reachable(target) == (True, "")


def test_check_reachable_reports_stderr(monkeypatch) -> None:
    monkeypatch.setattr(ssh.shutil, "which", lambda _name: "/usr/bin/ssh")
    monkeypatch.setattr(
        ssh.subprocess,
        "run",
        lambda cmd, **_k: subprocess.CompletedProcess(cmd, 255, "", "Permission denied (publickey).\n"),
    )
    target = ssh.SshTarget(host="203.0.113.10", user="root")

    ok, detail = ssh.check_reachable(target)

    assert not ok
    assert detail == "Permission denied (publickey)."
