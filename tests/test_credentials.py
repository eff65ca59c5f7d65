"""Tests for credential resolution and sudo composition."""

from __future__ import annotations

import pytest

from ctrpush.orchestration.sudo import (
    NoPrivilegeEscalation,
    PasswordEscalation,
    PasswordlessEscalation,
    resolve_credential,
)


def _no_prompt(_msg):
    raise AssertionError("getpass should not be called")


class TestResolveCredential:

    def test_root_needs_no_escalation(self):
        cred = resolve_credential("root", prompt=True, env={"SUDO_PASSWORD": "x"},
                                  getpass_fn=_no_prompt)
        assert cred == NoPrivilegeEscalation()

    def test_prompt_beats_environment(self):
        prompts = []

        def fake_getpass(msg):
            prompts.append(msg)
            return "typed"

        cred = resolve_credential("ubuntu", prompt=True, env={"SUDO_PASSWORD": "from-env"},
                                  getpass_fn=fake_getpass)
        assert isinstance(cred, PasswordEscalation)
        assert cred.secret == "typed"
        assert prompts == ["Enter sudo password for ubuntu: "]

    def test_environment_used_without_prompt(self):
        cred = resolve_credential("ubuntu", env={"SUDO_PASSWORD": "from-env"},
                                  getpass_fn=_no_prompt)
        assert isinstance(cred, PasswordEscalation)
        assert cred.secret == "from-env"

    def test_passwordless_when_nothing_supplied(self):
        cred = resolve_credential("ubuntu", env={}, getpass_fn=_no_prompt)
        assert cred == PasswordlessEscalation()

    def test_empty_environment_value_is_ignored(self):
        cred = resolve_credential("ubuntu", env={"SUDO_PASSWORD": ""}, getpass_fn=_no_prompt)
        assert cred == PasswordlessEscalation()

    def test_empty_prompt_ignores_environment(self):
        cred = resolve_credential("ubuntu", prompt=True, env={"SUDO_PASSWORD": "env"},
                                  getpass_fn=lambda _m: "")
        assert cred == PasswordlessEscalation()


class TestEscalation:

    CTR = ["ctr", "-n", "k8s.io", "images", "ls"]

    def test_no_escalation_runs_directly(self):
        cred = NoPrivilegeEscalation()
        assert cred.escalate(self.CTR) == self.CTR
        assert cred.stdin is None

    def test_passwordless_is_non_interactive(self):
        cred = PasswordlessEscalation()
        assert cred.escalate(self.CTR) == ["sudo", "-n"] + self.CTR
        assert cred.stdin is None

    def test_password_goes_to_stdin_only(self):
        cred = PasswordEscalation("hunter2")
        argv = cred.escalate(self.CTR)
        assert argv == ["sudo", "-S", "-p", ""] + self.CTR
        assert "hunter2" not in " ".join(argv)
        assert cred.stdin == "hunter2\n"

    def test_repr_hides_secret(self):
        cred = PasswordEscalation("hunter2")
        assert "hunter2" not in repr(cred)
        assert "hunter2" not in cred.describe()

    def test_redact_and_clear(self):
        cred = PasswordEscalation("hunter2")
        assert cred.redact("bad password hunter2") == "bad password ****"
        cred.clear()
        assert cred.secret == ""
        assert cred.redact("hunter2") == "hunter2"

    @pytest.mark.parametrize("cred", [NoPrivilegeEscalation(), PasswordlessEscalation()])
    def test_redact_is_noop_without_secret(self, cred):
        assert cred.redact("anything") == "anything"
