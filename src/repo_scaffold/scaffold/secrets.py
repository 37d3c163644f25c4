"""Secret values for the provisioning workflow.

Values come from the process environment first. Missing values are prompted
for (masked) and remembered by the provider for the rest of the run; the
process environment itself is never modified. The operator may choose to
append a prompted value to the secrets file for future shell sourcing.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Protocol

import click

logger = logging.getLogger(__name__)

PromptFn = Callable[[str], str]
ConfirmFn = Callable[[str], bool]


class SecretProvider(Protocol):
    def obtain(self, name: str) -> str: ...

    def prompt(self, name: str) -> str: ...


def _click_prompt(message: str) -> str:
    return str(click.prompt(message, hide_input=True, default="", show_default=False))


def _click_confirm(message: str) -> bool:
    return bool(click.confirm(message, default=False))


def append_secret(path: Path, name: str, value: str) -> None:
    """Append a `NAME=value` line, stripping newlines from the value."""

    clean = value.replace("\r", "").replace("\n", "")
    needs_newline = False
    if path.exists():
        existing = path.read_bytes()
        needs_newline = bool(existing) and not existing.endswith(b"\n")
    with path.open("a", encoding="utf-8") as f:
        if needs_newline:
            f.write("\n")
        f.write(f"{name}={clean}\n")


class PromptingSecretProvider:
    """Environment first, then an interactive masked prompt."""

    def __init__(
        self,
        *,
        secrets_file: Path,
        environ: Mapping[str, str] | None = None,
        prompt: PromptFn = _click_prompt,
        confirm: ConfirmFn = _click_confirm,
    ) -> None:
        self._secrets_file = secrets_file
        self._environ = os.environ if environ is None else environ
        self._prompt = prompt
        self._confirm = confirm
        self._obtained: dict[str, str] = {}

    def obtain(self, name: str) -> str:
        existing = self._environ.get(name)
        if existing:
            return existing
        if name in self._obtained:
            return self._obtained[name]
        return self.prompt(name)

    def prompt(self, name: str) -> str:
        """Ask for a value even when the environment already has one."""

        value = ""
        while not value:
            value = self._prompt(f"Enter {name}")
            if not value:
                click.echo(f"{name} cannot be empty", err=True)

        self._obtained[name] = value

        if self._confirm(f"Save {name} to {self._secrets_file} for future runs?"):
            append_secret(self._secrets_file, name, value)
            logger.info("Saved secret", extra={"secret": name, "path": str(self._secrets_file)})

        return value
