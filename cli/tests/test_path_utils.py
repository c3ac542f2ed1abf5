from kamal_registry_cli.path_utils import write_text_atomic


def test_write_text_atomic_creates_parent_and_sets_mode(tmp_path) -> None:
    path = tmp_path / "nested" / "file.txt"

    write_text_atomic(path, "hello\n", mode=0o600)

    assert path.read_text(encoding="utf-8") == "hello\n"
    assert path.stat().st_mode & 0o777 == 0o600


def test_write_text_atomic_replaces_without_leftovers(tmp_path) -> None:
    path = tmp_path / "file.txt"
    path.write_text("old\n", encoding="utf-8")

    write_text_atomic(path, "new\n")

    assert path.read_text(encoding="utf-8") == "new\n"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["file.txt"]
