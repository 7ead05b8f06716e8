"""
Generate the PowerShell that runs inside a step.

The wrapper collects every bound parameter into ``$Parameters``, drops the
empty ones and then calls the original script (or the module command) with
``@Parameters``.

Template expressions (``${{ ... }}``) in the user's script are not valid
PowerShell on their own, so they are swapped for markers while the wrapper
is assembled and syntax checked, then restored in a single final pass.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from ps2pipeline.commands.type_mapping import Coercion, coercion
from ps2pipeline.errors.exceptions import ConfigurationError
from ps2pipeline.models import (
    BuildSystem,
    EnvironmentVariable,
    LiteralDefault,
    PipelineParameter,
    ResolvedParameter,
    SemanticType,
    Variable,
)
from ps2pipeline.utils.parse_powershell import check_syntax

__all__ = ["escape_template_expressions", "unescape_template_expressions", "value_expression", "generate_wrapper_script"]

logger = logging.getLogger(__name__)

_OPEN_MARKER = "__ps2pipeline_expr_open__"
_CLOSE_MARKER = "__ps2pipeline_expr_close__"
_TEMPLATE_EXPRESSION_RE = re.compile(r"\$\{\{(.*?)\}\}", re.DOTALL)

_REMOVE_EMPTY = """foreach ($key in @($Parameters.Keys)) {
    if ([String]::IsNullOrEmpty("$($Parameters[$key])")) { $Parameters.Remove($key) }
}"""


def escape_template_expressions(text: str) -> str:
    """
    Hide ``${{ ... }}`` from PowerShell tooling.

    Examples:
        >>> escape_template_expressions("echo ${{ parameters.x }}")
        'echo __ps2pipeline_expr_open__ parameters.x __ps2pipeline_expr_close__'
    """
    return _TEMPLATE_EXPRESSION_RE.sub(lambda m: f"{_OPEN_MARKER}{m.group(1)}{_CLOSE_MARKER}", text)


def unescape_template_expressions(text: str) -> str:
    return text.replace(_OPEN_MARKER, "${{").replace(_CLOSE_MARKER, "}}")


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def value_expression(source: object, build_system: BuildSystem) -> str:
    """PowerShell expression reading the bound value of a parameter.

    Examples:
        >>> value_expression(Variable("Build_Version"), BuildSystem.ADO)
        "'$(Build_Version)'"
        >>> value_expression(EnvironmentVariable("TOKEN"), BuildSystem.GITHUB)
        '${env:TOKEN}'
    """
    if isinstance(source, Variable):
        return f"'$({source.name})'"
    if isinstance(source, EnvironmentVariable):
        return "${env:" + source.name + "}"
    if isinstance(source, PipelineParameter):
        if build_system is BuildSystem.GITHUB:
            return "'${{github.event.inputs." + source.name + "}}'"
        return "'${{parameters." + source.name + "}}'"
    if isinstance(source, LiteralDefault):
        return _quote(source.value)
    raise TypeError(f"Unknown binding source: {source!r}")


def _assignment(resolved: ResolvedParameter, build_system: BuildSystem) -> list[str]:
    name = resolved.descriptor.name
    target = f"$Parameters.{name}"
    value = value_expression(resolved.source, build_system)
    rule = coercion(resolved.descriptor)
    if rule is Coercion.SPLIT:
        return [f"{target} = @({value} -split ';' -replace '^[''\"]' -replace '[''\"]$')"]
    if rule is Coercion.SCRIPT_BLOCK:
        return [f"{target} = [ScriptBlock]::Create({value})"]
    if rule is Coercion.SCRIPT_BLOCK_ARRAY:
        return [f"{target} = @(foreach ($part in ({value} -split ';')) {{ [ScriptBlock]::Create($part) }})"]
    lines = [f"{target} = {value}"]
    if resolved.descriptor.type is SemanticType.BOOLEAN:
        lines.append(f"if ({target} -is [string] -and {target}) {{ {target} = {target} -match '^(true|1)$' }}")
    return lines


def generate_wrapper_script(
    resolved: Sequence[ResolvedParameter],
    build_system: BuildSystem,
    script_text: str | None = None,
    module: str | None = None,
    command_name: str | None = None,
    supports_should_process: bool = False,
) -> str:
    """
    Build the wrapper script.

    Args:
        resolved: Bound parameters in declaration order, excluded ones already removed.
        build_system: Decides how pipeline parameters are referenced.
        script_text: The original script; wrapped and invoked directly when
            there is no module.
        module: Module to import before calling *command_name*.
        command_name: Command exported by *module*.
        supports_should_process: Turn ``-Confirm`` off.

    Returns:
        str: PowerShell text with template expressions restored.

    Raises:
        ConfigurationError: when neither a script nor a module command is given.
        GenerationFailure: when the assembled text is not valid PowerShell.
    """
    lines = ["$Parameters = @{}"]
    for item in resolved:
        lines.extend(_assignment(item, build_system))
    if supports_should_process:
        lines.append("$Parameters.Confirm = $false")
    lines.append(_REMOVE_EMPTY)

    if module:
        if not command_name:
            raise ConfigurationError(f"A command name is required to invoke module {module!r}")
        lines.append(f"Import-Module {_quote(module)} -Force -PassThru | Out-Host")
        lines.append(f"{command_name} @Parameters")
    elif script_text is not None:
        lines.append("& {")
        lines.append(escape_template_expressions(script_text.strip("\r\n")))
        lines.append("} @Parameters")
    else:
        raise ConfigurationError("Either a script or a module command is required")

    escaped = "\n".join(lines) + "\n"
    restored = unescape_template_expressions(escaped)
    check_syntax(escaped, shown_text=restored)
    logger.debug("Generated wrapper script of %d line(s)", escaped.count("\n"))
    return restored
