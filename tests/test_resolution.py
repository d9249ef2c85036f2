"""
Tests for the resolution policy — bypass, environment, override, defaults.
"""

import os
from pathlib import Path

import pytest

from pymanager.core.models.action import ActionKind, BlockReason
from pymanager.core.services.override import OverrideManager
from pymanager.core.services.resolution import ResolutionPolicy, should_bypass


def _resolve(ctx, command, *args):
    return ResolutionPolicy(ctx).resolve(command, list(args))


class TestScenarios:
    """End-to-end policy scenarios."""

    def test_override_and_build_mode(self, make_context, two_pythons):
        ctx = make_context()
        manager = OverrideManager(ctx)
        manager.set("3.12")

        action = _resolve(ctx, "python3")
        assert action.kind is ActionKind.RUN_PATH
        assert action.path == str(two_pythons[1])

        blocked = _resolve(ctx, "python3", "-m", "pip", "install", "x")
        assert blocked.reason is BlockReason.PIP_OUTSIDE_VENV

        manager.set("3.12", build_mode=True)
        allowed = _resolve(ctx, "python3", "-m", "pip", "install", "x")
        assert allowed.kind is ActionKind.RUN_BUILD_MODE
        assert allowed.argv == [str(two_pythons[1]), "-m", "pip", "install", "x"]
        assert "[build mode]" in allowed.notice

    def test_environment_version_gate(self, make_context, two_pythons, fake_venv, fake_python, tmp_path):
        fake_python(two_pythons[0].parent, "python3.9", "3.9.18")
        root = fake_venv(tmp_path / "venv", "3.11.4")
        ctx = make_context({"VIRTUAL_ENV": str(root)})

        action = _resolve(ctx, "python3.11")
        assert action.kind is ActionKind.RUN_PATH
        assert action.path == str(root / "bin" / "python")

        blocked = _resolve(ctx, "python3.9")
        assert blocked.reason is BlockReason.VERSION_MISMATCH
        assert "This environment uses Python 3.11" in blocked.message

    def test_stale_override(self, make_context, two_pythons):
        ctx = make_context()
        OverrideManager(ctx).set("3.12")
        os.remove(two_pythons[1])

        action = _resolve(ctx, "python")
        assert action.reason is BlockReason.STALE_OVERRIDE
        assert "no longer available" in action.message
        assert "3.10" in action.message


class TestBypass:
    """Tests for bypass conditions."""

    @pytest.mark.parametrize("var", ["PYTHON_MANAGER_FORCE_BYPASS", "CI", "CODEX_SANDBOX_NETWORK_DISABLED"])
    def test_variables(self, make_context, var):
        ctx = make_context({var: "1"})
        assert should_bypass(ctx)
        action = _resolve(ctx, "python")
        assert action.kind is ActionKind.RUN_SYSTEM
        assert action.fallback_to_latest

    def test_non_interactive(self, make_context):
        ctx = make_context(interactive=False)
        assert should_bypass(ctx)
        assert _resolve(ctx, "pip", "list").kind is ActionKind.RUN_SYSTEM

    def test_pip_has_no_fallback(self, make_context):
        action = _resolve(make_context(interactive=False), "pip")
        assert not action.fallback_to_latest

    def test_versioned_prefers_catalog(self, make_context, two_pythons):
        action = _resolve(make_context(interactive=False), "python3.12", "-V")
        assert action.path == str(two_pythons[1])

    def test_versioned_missing_goes_to_system(self, make_context, two_pythons):
        action = _resolve(make_context(interactive=False), "py3.11")
        assert action.kind is ActionKind.RUN_SYSTEM
        assert action.command == "python3.11"

    def test_versioned_pip_beside_interpreter(self, make_context, two_pythons, fake_python, dir_b):
        pip = fake_python(dir_b, "pip3.12", "3.12.1")
        action = _resolve(make_context(interactive=False), "pip3.12", "list")
        assert action.path == str(pip)

    def test_venv_pip_mismatch_still_blocked(self, make_context, two_pythons, fake_venv, tmp_path):
        root = fake_venv(tmp_path / "venv", "3.11.4")
        ctx = make_context({"VIRTUAL_ENV": str(root), "CI": "true"})

        blocked = _resolve(ctx, "pip3.12", "install", "x")
        assert blocked.reason is BlockReason.VERSION_MISMATCH
        assert "venv uses Python 3.11" in blocked.message

        module = _resolve(ctx, "python3.12", "-m", "pip", "install", "x")
        assert module.reason is BlockReason.VERSION_MISMATCH

    def test_venv_pip_match_uses_venv(self, make_context, fake_venv, tmp_path):
        root = fake_venv(tmp_path / "venv", "3.11.4")
        ctx = make_context({"VIRTUAL_ENV": str(root), "CI": "true"})
        action = _resolve(ctx, "pip3.11", "install", "x")
        assert action.path == str(root / "bin" / "pip")

    def test_engine_unavailable_fails_open(self, make_context, two_pythons):
        ctx = make_context()
        ctx.engine_available = False
        action = _resolve(ctx, "pip3.12", "install", "x")
        assert action.kind is ActionKind.RUN_SYSTEM
        assert action.command == "pip3.12"
        assert not action.fallback_to_latest


class TestEnvironment:
    """Tests for resolution inside an active environment."""

    def test_bare_commands_use_env(self, make_context, fake_venv, tmp_path):
        root = fake_venv(tmp_path / "venv")
        ctx = make_context({"VIRTUAL_ENV": str(root)})
        assert _resolve(ctx, "python").path == str(root / "bin" / "python")
        assert _resolve(ctx, "pip", "install", "x").path == str(root / "bin" / "pip")

    def test_env_beats_override(self, make_context, two_pythons, fake_venv, tmp_path):
        root = fake_venv(tmp_path / "venv")
        ctx = make_context({"VIRTUAL_ENV": str(root)})
        OverrideManager(ctx).set("3.12")
        assert _resolve(ctx, "python3").path == str(root / "bin" / "python3")

    def test_pip_module_allowed(self, make_context, fake_venv, tmp_path):
        root = fake_venv(tmp_path / "venv")
        ctx = make_context({"VIRTUAL_ENV": str(root)})
        action = _resolve(ctx, "python", "-m", "pip", "install", "x")
        assert action.kind is ActionKind.RUN_PATH

    def test_missing_env_binary_goes_to_system(self, make_context, fake_venv, tmp_path):
        root = fake_venv(tmp_path / "venv")
        os.remove(root / "bin" / "pip")
        ctx = make_context({"VIRTUAL_ENV": str(root)})
        action = _resolve(ctx, "pip")
        assert action.kind is ActionKind.RUN_SYSTEM

    def test_named_executable_in_env(self, make_context, fake_venv, fake_python, tmp_path):
        root = fake_venv(tmp_path / "venv", "3.11.4")
        extra = fake_python(root / "bin", "python3.13", "3.13.0")
        ctx = make_context({"VIRTUAL_ENV": str(root)})
        assert _resolve(ctx, "python3.13").path == str(extra)

    def test_matching_pip_version(self, make_context, fake_venv, tmp_path):
        root = fake_venv(tmp_path / "venv", "3.11.4")
        ctx = make_context({"VIRTUAL_ENV": str(root)})
        assert _resolve(ctx, "pip3.11").path == str(root / "bin" / "pip")
        assert _resolve(ctx, "pip3.12").reason is BlockReason.VERSION_MISMATCH

    def test_py_alias(self, make_context, fake_venv, tmp_path):
        root = fake_venv(tmp_path / "venv", "3.11.4")
        ctx = make_context({"VIRTUAL_ENV": str(root)})
        assert _resolve(ctx, "py3.11").path == str(root / "bin" / "python")

    def test_unannounced_venv_on_path(self, make_context, fake_venv, tmp_path):
        root = fake_venv(tmp_path / "venv")
        ctx = make_context({"PATH": str(root / "bin")})
        assert _resolve(ctx, "python").path == str(root / "bin" / "python")
        assert ctx.environ["VIRTUAL_ENV"] == str(root)


class TestNoDefault:
    """Tests for resolution with no environment and no override."""

    def test_bare_python(self, make_context, two_pythons):
        action = _resolve(make_context(), "python")
        assert action.reason is BlockReason.NO_DEFAULT
        assert "python3.12 -> Python 3.12.1" in action.message
        assert "setpy 3.12" in action.message

    def test_bare_python_nothing_installed(self, make_context):
        action = _resolve(make_context(), "python3")
        assert action.reason is BlockReason.NO_DEFAULT
        assert "No Python 3.x installations found" in action.message

    def test_versioned_runs_catalog_entry(self, make_context, two_pythons):
        action = _resolve(make_context(), "python3.10", "-V")
        assert action.argv == [str(two_pythons[0]), "-V"]

    def test_versioned_not_found(self, make_context, two_pythons):
        action = _resolve(make_context(), "python3.11")
        assert action.reason is BlockReason.NOT_FOUND

    def test_versioned_ignores_override(self, make_context, two_pythons):
        ctx = make_context()
        OverrideManager(ctx).set("3.12")
        assert _resolve(ctx, "python3.10").path == str(two_pythons[0])

    @pytest.mark.parametrize("command,args", [
        ("pip", ["install", "x"]),
        ("pip3", []),
        ("pip3.12", ["install", "x"]),
        ("python", ["-m", "pip", "install", "x"]),
        ("python3.12", ["-m", "pip", "install", "x"]),
    ])
    def test_pip_always_blocked_without_build_mode(self, make_context, two_pythons, command, args):
        ctx = make_context()
        assert _resolve(ctx, command, *args).reason is BlockReason.PIP_OUTSIDE_VENV
        OverrideManager(ctx).set("3.12")
        assert _resolve(ctx, command, *args).reason is BlockReason.PIP_OUTSIDE_VENV

    def test_build_mode_bare_pip(self, make_context, two_pythons):
        ctx = make_context()
        OverrideManager(ctx).set("3.12", build_mode=True)
        action = _resolve(ctx, "pip", "install", "x")
        assert action.kind is ActionKind.RUN_BUILD_MODE
        assert action.argv == [str(two_pythons[1]), "-m", "pip", "install", "x"]

    def test_build_mode_versioned_pip(self, make_context, two_pythons):
        ctx = make_context()
        OverrideManager(ctx).set("3.12", build_mode=True)
        action = _resolve(ctx, "pip3.10", "install", "x")
        assert action.argv == [str(two_pythons[0]), "-m", "pip", "install", "x"]

    def test_build_mode_versioned_missing(self, make_context, two_pythons):
        ctx = make_context()
        OverrideManager(ctx).set("3.12", build_mode=True)
        assert _resolve(ctx, "python3.11", "-m", "pip").reason is BlockReason.NOT_FOUND

    def test_unmanaged_name(self, make_context):
        with pytest.raises(ValueError):
            _resolve(make_context(), "ruby")

    def test_out_of_range(self, make_context):
        with pytest.raises(ValueError):
            _resolve(make_context(), "python3.7")


class TestMessages:
    """Remediation text for blocks."""

    def test_pip_tip_names_override(self, make_context, two_pythons):
        ctx = make_context()
        OverrideManager(ctx).set("3.12")
        message = _resolve(ctx, "pip").message
        assert "not available outside virtual environments" in message
        assert "setpy 3.12 --build" in message

    def test_pip_module_message(self, make_context, two_pythons):
        ctx = make_context()
        OverrideManager(ctx).set("3.10")
        message = _resolve(ctx, "python", "-m", "pip").message
        assert "python -m pip is blocked outside virtual environments" in message
        assert "python3.10 -m venv" in message

    def test_stale_with_nothing_left(self, make_context, fake_python, dir_a: Path):
        path = fake_python(dir_a, "python3.12", "3.12.1")
        ctx = make_context()
        OverrideManager(ctx).set("3.12")
        os.remove(path)
        assert "Run: setpy clear" in _resolve(ctx, "python3").message
