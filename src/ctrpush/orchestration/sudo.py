"""Privilege escalation strategies for remote ``ctr`` commands.

The strategy is resolved once per job by :func:`resolve_credential` and
then handed to every component that runs privileged commands.  A sudo
password, when one is used, is never placed on a command line: it is
written to the remote ``sudo -S`` process on stdin.
"""

from __future__ import annotations

import getpass
import os
from typing import Callable, Mapping

PRIVILEGED_USER = "root"
SUDO_PASSWORD_ENV = "SUDO_PASSWORD"


class Credential:
    """Base class for the privilege escalation strategies."""

    def escalate(self, argv: list[str]) -> list[str]:
        """Return *argv* wrapped for this strategy."""
        return list(argv)

    @property
    def stdin(self) -> str | None:
        """Data to feed the remote command's stdin, if any."""
        return None

    def describe(self) -> str:
        raise NotImplementedError

    def redact(self, text: str) -> str:
        """Mask any occurrence of a held secret in *text*."""
        return text

    def clear(self) -> None:
        """Discard any held secret."""

    def __eq__(self, other) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return "%s()" % type(self).__name__


class NoPrivilegeEscalation(Credential):
    """The SSH account already has rights to run ``ctr``."""

    def describe(self) -> str:
        return "no sudo needed"


class PasswordlessEscalation(Credential):
    """``sudo`` runs without a password (``NOPASSWD`` in sudoers)."""

    def escalate(self, argv: list[str]) -> list[str]:
        return ["sudo", "-n"] + list(argv)

    def describe(self) -> str:
        return "using passwordless sudo for ctr commands"


class PasswordEscalation(Credential):
    """``sudo`` reads a password supplied on stdin."""

    def __init__(self, secret: str):
        self._secret = secret

    @property
    def secret(self) -> str:
        return self._secret

    def escalate(self, argv: list[str]) -> list[str]:
        # -p '' suppresses the prompt text so nothing is echoed back.
        return ["sudo", "-S", "-p", ""] + list(argv)

    @property
    def stdin(self) -> str | None:
        return self._secret + "\n"

    def describe(self) -> str:
        return "using sudo with password for ctr commands"

    def redact(self, text: str) -> str:
        if not self._secret or not text:
            return text
        return text.replace(self._secret, "****")

    def clear(self) -> None:
        self._secret = ""

    def __eq__(self, other) -> bool:
        return isinstance(other, PasswordEscalation) and other._secret == self._secret

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return "PasswordEscalation(secret=****)"


def resolve_credential(
    ssh_user: str,
    prompt: bool = False,
    env: Mapping[str, str] | None = None,
    getpass_fn: Callable[[str], str] | None = None,
) -> Credential:
    """Decide how ``ctr`` commands will be escalated on the targets.

    Precedence for non-root accounts is strict: an interactive prompt
    wins over ``SUDO_PASSWORD`` in the environment, which wins over
    assuming passwordless sudo.  A wrong guess is not detected here; it
    surfaces later as a failed load on the affected hosts.

    Args:
        ssh_user: Account used to log in to the targets.
        prompt: Read the password interactively without echo.
        env: Environment to consult (defaults to ``os.environ``).
        getpass_fn: Non-echoing input function (defaults to
            :func:`getpass.getpass`).

    Returns:
        The resolved :class:`Credential`.
    """
    if ssh_user == PRIVILEGED_USER:
        return NoPrivilegeEscalation()

    if prompt:
        getpass_fn = getpass_fn or getpass.getpass
        secret = getpass_fn("Enter sudo password for %s: " % ssh_user)
        # An empty answer means passwordless sudo, never the environment.
        return PasswordEscalation(secret) if secret else PasswordlessEscalation()

    env = os.environ if env is None else env
    secret = env.get(SUDO_PASSWORD_ENV, "")
    if secret:
        return PasswordEscalation(secret)

    return PasswordlessEscalation()
