import pytest

from kamal_registry_cli import validators


@pytest.mark.parametrize(
    "value",
    ["1.2.3.4", "10.0.0.1", "203.0.113.10", "999.999.999.999", "0.0.0.0"],
)
def test_ipv4_accepts_four_digit_groups_regardless_of_range(value) -> None:
    assert validators.is_valid_ipv4(value)


@pytest.mark.parametrize(
    "value",
    [
        "",
        "1.2.3",
        "1.2.3.4.5",
        "1..2.3",
        "1.2.3.1234",
        "a.b.c.d",
        " 1.2.3.4",
        "1.2.3.4 ",
        "1.2.3.4\n",
        "\u0661.\u0662.\u0663.\u0664",
    ],
)
def test_ipv4_rejects_wrong_group_count_or_shape(value) -> None:
    assert not validators.is_valid_ipv4(value)


def test_out_of_range_octet_is_flagged_but_not_rejected() -> None:
    assert validators.has_out_of_range_octet("256.1.1.1")
    assert not validators.has_out_of_range_octet("255.1.1.1")
    assert not validators.has_out_of_range_octet("not-an-ip")


@pytest.mark.parametrize(
    "value",
    ["example.com", "registry.example.com", "a-b.example.io", "x.y.z.dev", "REGISTRY.Example.COM"],
)
def test_domain_accepts_labels_and_tld(value) -> None:
    assert validators.is_valid_domain(value)


@pytest.mark.parametrize(
    "value",
    [
        "",
        "localhost",
        "example.c",
        "-bad.example.com",
        "bad-.example.com",
        "ex ample.com",
        "example.123",
        ".example.com",
        "example.com\n",
    ],
)
def test_domain_rejects_invalid(value) -> None:
    assert not validators.is_valid_domain(value)


def test_prompt_ip_reasks_until_valid(monkeypatch) -> None:
    answers = iter(["", "1.2.3", "10.0.0.5"])
    monkeypatch.setattr(validators.typer, "prompt", lambda *_a, **_k: next(answers))
    assert validators.prompt_ip() == "10.0.0.5"


def test_prompt_domain_lowercases(monkeypatch) -> None:
    answers = iter(["not a domain", "Registry.Example.com"])
    monkeypatch.setattr(validators.typer, "prompt", lambda *_a, **_k: next(answers))
    assert validators.prompt_domain() == "registry.example.com"
