from __future__ import annotations

import re

import typer

from . import console

_IPV4_RE = re.compile(r"[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}")
_DOMAIN_RE = re.compile(
    r"(?:[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?\.)+[A-Za-z]{2,}"
)


def is_valid_ipv4(value: str) -> bool:
    return bool(_IPV4_RE.fullmatch(value or ""))


def is_valid_domain(value: str) -> bool:
    return bool(_DOMAIN_RE.fullmatch(value or ""))


def has_out_of_range_octet(value: str) -> bool:
    if not is_valid_ipv4(value):
        return False
    return any(int(part) > 255 for part in value.split("."))


def prompt_ip(default: str | None = None) -> str:
    while True:
        value = typer.prompt(
            "Server IP address",
            default=default or "",
            show_default=bool(default),
        ).strip()
        if not value:
            console.err("IP address cannot be empty.")
            continue
        if is_valid_ipv4(value):
            if has_out_of_range_octet(value):
                console.warn(f"{value} has an octet above 255; continuing as entered.")
            return value
        console.err(f"Invalid IPv4 address: {value}")


def prompt_domain(default: str | None = None) -> str:
    while True:
        value = typer.prompt(
            "Registry domain (e.g. registry.example.com)",
            default=default or "",
            show_default=bool(default),
        ).strip()
        if not value:
            console.err("Domain cannot be empty.")
            continue
        if is_valid_domain(value):
            return value.lower()
        console.err(f"Invalid domain: {value}")


def prompt_ssh_user(default: str) -> str:
    while True:
        value = typer.prompt("SSH user", default=default).strip()
        if value:
            return value
        console.err("SSH user cannot be empty.")
