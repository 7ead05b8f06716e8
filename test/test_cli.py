from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Any

import pytest
from ruamel.yaml import YAML


@pytest.fixture(autouse=True)
def no_argcomplete_and_quiet_logging(monkeypatch, tmp_path):
    """Neutralize shell completion, logging setup and any config file on disk."""
    import ps2pipeline.__main__ as m
    from ps2pipeline import config as config_module

    monkeypatch.setattr(m.argcomplete, "autocomplete", lambda *a, **k: None)

    levels: list[str] = []

    def fake_generate_config(level: str = "INFO") -> dict[str, Any]:
        levels.append(level)
        return {"version": 1, "handlers": {}, "root": {"level": level, "handlers": []}}

    monkeypatch.setattr(m, "generate_config", fake_generate_config)
    monkeypatch.setattr(m.logging.config, "dictConfig", lambda cfg: None)
    monkeypatch.setattr(m, "config", config_module.reset_for_testing(tmp_path / "no-such-config.toml"))

    m._captured_levels = levels  # type: ignore[attr-defined]

    yield


@pytest.fixture
def run_cli(monkeypatch):
    """Run main() with argv and return its exit code."""

    def _run(argv: list[str]) -> int | None:
        import ps2pipeline.__main__ as m

        monkeypatch.setattr(sys, "argv", argv)
        try:
            return m.main()
        except SystemExit as e:
            return int(e.code)

    return _run


def load(text: str):
    return YAML(typ="safe").load(text)


def test_version_flag_exits_zero(run_cli):
    assert run_cli(["ps2pipeline", "--version"]) == 0


def test_convert_inline_script(run_cli, capsys):
    code = run_cli(["ps2pipeline", "convert", "--name", "Hello", "--script", "param([string]$Name)\nWrite-Host $Name"])
    assert code == 0
    step = load(capsys.readouterr().out)
    assert step["displayName"] == "Hello"
    assert "$Parameters.Name = '${{parameters.Name}}'" in step["pwsh"]
    assert step["parameters"] == [{"name": "Name", "type": "string", "default": ""}]


def test_convert_script_from_stdin(run_cli, capsys, monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO("param($Id)\n"))
    code = run_cli(["ps2pipeline", "convert", "--name", "FromStdin", "--script", "-", "--target", "github"])
    assert code == 0
    step = load(capsys.readouterr().out)
    assert step["name"] == "FromStdin"
    assert step["shell"] == "pwsh"


def test_convert_shell_file_for_github(run_cli, capsys, tmp_path):
    script = tmp_path / "setup.sh"
    script.write_text("echo hi\n", encoding="utf-8")
    code = run_cli(["ps2pipeline", "convert", "--file", str(script), "--target", "GitHub"])
    assert code == 0
    assert load(capsys.readouterr().out) == {"name": "setup", "run": "echo hi\n", "shell": "bash"}


def test_convert_wildcard_options(run_cli, capsys):
    code = run_cli(
        [
            "ps2pipeline",
            "convert",
            "--name",
            "Build",
            "--script",
            "param($Configuration, $Token, $Secret)",
            "--variable-parameter",
            "Build_Config*",
            "--environment-parameter",
            "Token",
            "--exclude-parameter",
            "Secret",
            "--system-access-token",
            "--pool-vm-image",
            "windows-2022",
        ]
    )
    assert code == 0
    step = load(capsys.readouterr().out)
    assert "$Parameters.Configuration = '$(Build_Configuration)'" in step["powershell"]
    assert "$Parameters.Token = ${env:Token}" in step["powershell"]
    assert "$Parameters.Secret" not in step["powershell"]
    assert step["env"] == {"SYSTEM_ACCESSTOKEN": "$(System.AccessToken)"}
    assert "parameters" not in step


def test_convert_default_option(run_cli, capsys):
    code = run_cli(
        ["ps2pipeline", "convert", "--name", "Build", "--script", "param([int]$Count)", "--default", "Build_Count=7"]
    )
    assert code == 0
    step = load(capsys.readouterr().out)
    assert step["parameters"] == [{"name": "Count", "type": "number", "default": "7"}]


def test_convert_bad_default_is_an_error(run_cli):
    code = run_cli(["ps2pipeline", "convert", "--name", "Build", "--script", "param($x)", "--default", "oops"])
    assert code == 1


def test_convert_missing_file_returns_10(run_cli, tmp_path):
    assert run_cli(["ps2pipeline", "convert", "--file", str(tmp_path / "missing.ps1")]) == 10


def test_convert_unsupported_extension_returns_2(run_cli, tmp_path):
    notes = tmp_path / "notes.txt"
    notes.write_text("hello", encoding="utf-8")
    assert run_cli(["ps2pipeline", "convert", "--file", str(notes)]) == 2


def test_convert_invalid_script_returns_1(run_cli):
    assert run_cli(["ps2pipeline", "convert", "--name", "Broken", "--script", "param([string]$x"]) == 1


def test_convert_requires_a_source(run_cli):
    assert run_cli(["ps2pipeline", "convert", "--name", "Nothing"]) == 2


def test_convert_requires_a_name_for_scripts(run_cli):
    assert run_cli(["ps2pipeline", "convert", "--script", "param($x)"]) == 2


def test_convert_module_command(run_cli, capsys, tmp_path):
    module_file = tmp_path / "Tools.psm1"
    module_file.write_text("function Get-Thing {\n    param([string]$Id)\n    $Id\n}\n", encoding="utf-8")
    code = run_cli(
        ["ps2pipeline", "convert", "--name", "Get-Thing", "--module", "Tools", "--module-file", str(module_file)]
    )
    assert code == 0
    step = load(capsys.readouterr().out)
    assert "Import-Module 'Tools' -Force -PassThru | Out-Host" in step["pwsh"]
    assert step["pwsh"].rstrip().endswith("Get-Thing @Parameters")


def test_convert_module_command_not_found(run_cli, tmp_path):
    module_file = tmp_path / "Tools.psm1"
    module_file.write_text("function Get-Other { }\n", encoding="utf-8")
    code = run_cli(["ps2pipeline", "convert", "--name", "Get-Thing", "--module-file", str(module_file)])
    assert code == 1


def test_convert_writes_out_file(run_cli, tmp_path):
    out = tmp_path / "out" / "step.yml"
    code = run_cli(["ps2pipeline", "convert", "--name", "Hi", "--script", "Write-Host hi", "--out", str(out)])
    assert code == 0
    assert load(out.read_text(encoding="utf-8"))["displayName"] == "Hi"


def test_convert_dry_run_does_not_write(run_cli, tmp_path):
    out = tmp_path / "step.yml"
    code = run_cli(
        ["ps2pipeline", "convert", "--name", "Hi", "--script", "Write-Host hi", "--out", str(out), "--dry-run"]
    )
    assert code == 0
    assert not out.exists()


def test_pipeline_command(run_cli, capsys, tmp_path):
    (tmp_path / "Build.ps1").write_text("param([Parameter(Mandatory)][string]$Version)\n", encoding="utf-8")
    (tmp_path / "report.py").write_text("print('done')\n", encoding="utf-8")
    code = run_cli(
        ["ps2pipeline", "pipeline", str(tmp_path / "Build.ps1"), str(tmp_path / "report.py"), "--target", "github"]
    )
    assert code == 0
    document = load(capsys.readouterr().out)
    assert document["on"]["workflow_dispatch"]["inputs"] == {"Version": {"required": True, "type": "string"}}
    steps = document["jobs"]["build"]["steps"]
    assert [step.get("name") for step in steps] == [None, "Build", "report"]


def test_pipeline_command_without_steps(run_cli, tmp_path):
    notes = tmp_path / "notes.txt"
    notes.write_text("x", encoding="utf-8")
    assert run_cli(["ps2pipeline", "pipeline", str(notes)]) == 1


def test_inspect_command(run_cli, capsys):
    script = "[CmdletBinding(SupportsShouldProcess)]\nparam([ValidateSet('a','b')][string]$Mode = 'a', [switch]$Force)"
    code = run_cli(["ps2pipeline", "inspect", "--script", script])
    assert code == 0
    document = load(capsys.readouterr().out)
    assert document["supports_should_process"] is True
    mode, force = document["parameters"]
    assert mode == {
        "name": "Mode",
        "type": "Text",
        "mandatory": False,
        "default_literal": "a",
        "valid_values": ["a", "b"],
        "type_name": "string",
    }
    assert force["type"] == "Boolean"


def test_inspect_requires_a_source(run_cli):
    assert run_cli(["ps2pipeline", "inspect"]) == 1


def test_inspect_module_file_without_function_name(run_cli, tmp_path):
    module_file = tmp_path / "Tools.psm1"
    module_file.write_text("function Get-Thing { param($Id) }\n", encoding="utf-8")
    assert run_cli(["ps2pipeline", "inspect", "--module-file", str(module_file)]) == 1


def test_inspect_module_function(run_cli, capsys, tmp_path):
    module_file = tmp_path / "Tools.psm1"
    module_file.write_text("function Get-Thing { param([int]$Id) }\n", encoding="utf-8")
    code = run_cli(["ps2pipeline", "inspect", "--module-file", str(module_file), "--name", "Get-Thing"])
    assert code == 0
    (parameter,) = load(capsys.readouterr().out)["parameters"]
    assert parameter["name"] == "Id"
    assert parameter["type"] == "Number"


@pytest.mark.parametrize(
    "flags, expected",
    [([], "INFO"), (["-v"], "DEBUG"), (["-q"], "CRITICAL")],
)
def test_log_levels(run_cli, flags, expected):
    import ps2pipeline.__main__ as m

    code = run_cli(["ps2pipeline", "convert", "--name", "Hi", "--script", "Write-Host hi", *flags])
    assert code == 0
    assert m._captured_levels[-1] == expected  # type: ignore[attr-defined]


def test_mistyped_subcommand_suggests(run_cli, capsys):
    assert run_cli(["ps2pipeline", "convrt"]) == 2
    assert "Did you mean: convert?" in capsys.readouterr().err


def test_convert_default_option_ignores_case(run_cli, capsys):
    code = run_cli(
        ["ps2pipeline", "convert", "--name", "Build", "--script", "param([string]$Version)", "--default", "version=1"]
    )
    assert code == 0
    step = load(capsys.readouterr().out)
    assert step["parameters"] == [{"name": "Version", "type": "string", "default": "1"}]
