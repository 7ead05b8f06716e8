"""Convert a PowerShell script or a script file into a single pipeline step."""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from ps2pipeline.commands.resolve_sources import resolve_parameters
from ps2pipeline.commands.type_mapping import to_parameter_spec
from ps2pipeline.commands.wrapper_script import generate_wrapper_script
from ps2pipeline.errors.exceptions import ConfigurationError
from ps2pipeline.models import (
    BuildSystem,
    ConversionOptions,
    ConversionResult,
    ParameterDescriptor,
    PipelineParameter,
    PipelineParameterSpec,
)
from ps2pipeline.utils.parse_powershell import parse_signature

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "is_windows_image",
    "read_file_text",
    "emit_powershell_step",
    "convert_file",
    "convert_build_step",
]

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".ps1", ".sh", ".py")

_WINDOWS_IMAGE_RE = re.compile(r"(^|[^a-z])win", re.IGNORECASE)


def is_windows_image(vm_image: str | None) -> bool:
    """
    True when a pool VM image names a Windows host.

    Examples:
        >>> is_windows_image("windows-latest"), is_windows_image("vs2017-win2016")
        (True, True)
        >>> is_windows_image("ubuntu-latest"), is_windows_image(None)
        (False, False)
    """
    return bool(vm_image) and bool(_WINDOWS_IMAGE_RE.search(vm_image or ""))


def read_file_text(path: str | Path) -> str:
    """Default file reader; errors propagate to the caller."""
    return Path(path).read_text(encoding="utf-8")


def emit_powershell_step(
    options: ConversionOptions, wrapper_script: str, parameters: Sequence[PipelineParameterSpec]
) -> dict[str, Any]:
    """Serialize a wrapper script into the step shape of the target build system."""
    if options.build_system is BuildSystem.GITHUB:
        return {"name": options.name, "run": wrapper_script, "shell": "pwsh"}

    shell_key = "powershell" if is_windows_image(options.pool_vm_image) else "pwsh"
    step: dict[str, Any] = {shell_key: wrapper_script, "displayName": options.name}
    if parameters:
        step["parameters"] = [spec.to_dict() for spec in parameters]
    if options.use_system_access_token:
        step["env"] = {"SYSTEM_ACCESSTOKEN": "$(System.AccessToken)"}
    return step


def _raw_step(options: ConversionOptions, extension: str, content: str) -> dict[str, Any]:
    github = options.build_system is BuildSystem.GITHUB
    if extension == ".sh":
        if github:
            return {"name": options.name, "run": content, "shell": "bash"}
        return {"bash": content, "displayName": options.name}
    # .py
    if github:
        return {"name": options.name, "run": content, "shell": "python"}
    return {
        "task": "PythonScript@0",
        "inputs": {"scriptSource": "inline", "script": content},
        "displayName": options.name,
    }


def _normalize_extension(path: str | Path, extension: str | None) -> str:
    ext = extension if extension else Path(path).suffix
    ext = ext.lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def convert_file(
    path: str | Path,
    options: ConversionOptions,
    extension: str | None = None,
    reader: Callable[[str | Path], str] = read_file_text,
) -> ConversionResult | None:
    """
    Convert a script file, choosing the conversion by its extension.

    ``.ps1`` files go through parameter introspection like inline scripts;
    ``.sh`` and ``.py`` files become fixed shape steps holding the raw file
    content. Any other extension yields ``None``.
    """
    ext = _normalize_extension(path, extension)
    if ext not in SUPPORTED_EXTENSIONS:
        logger.warning(f"Unsupported script extension '{ext}' for {path}, no step produced.")
        return None

    if not options.name:
        options = dataclasses.replace(options, name=Path(path).stem)

    content = reader(path)
    logger.debug(f"Converting {ext} file {path} into step '{options.name}'")
    if ext == ".ps1":
        return convert_build_step(options, script_text=content)
    return ConversionResult(step=_raw_step(options, ext, content))


def convert_build_step(
    options: ConversionOptions,
    script_text: str | None = None,
    module: str | None = None,
    command_name: str | None = None,
    module_text: str | None = None,
    parameters: Sequence[ParameterDescriptor] | None = None,
    supports_should_process: bool | None = None,
    path: str | Path | None = None,
    extension: str | None = None,
    reader: Callable[[str | Path], str] = read_file_text,
) -> ConversionResult | None:
    """
    Convert a script, a module command or a script file into a pipeline step.

    Args:
        options: Step name, wildcard lists, defaults and target build system.
        script_text: Script source, or the definition of *command_name*.
        module: Module that owns the command; it is imported before the call.
        command_name: Command to invoke from *module*; defaults to the step name.
        module_text: Module source, searched for enum declarations.
        parameters: Explicit descriptors, used instead of reading *script_text*.
        supports_should_process: Overrides what the script's CmdletBinding says.
        path: Script file to convert instead of *script_text*.
        extension: Extension of *path* when it has none or a misleading one.
        reader: Reads *path*; errors propagate.

    Returns:
        ConversionResult | None: ``None`` only for file extensions that are
        not supported.

    Raises:
        ConfigurationError: when no script, command or path was given, or the
            step has no name.
        IntrospectionError: when the parameter block cannot be read.
        GenerationFailure: when the wrapper script is not valid PowerShell.
    """
    if path is not None:
        return convert_file(path, options, extension=extension, reader=reader)

    if script_text is None and parameters is None:
        raise ConfigurationError("A script, a module command or a path is required")
    if not options.name:
        raise ConfigurationError("A step name is required")

    if parameters is None:
        signature = parse_signature(script_text or "", options.enum_types, context_text=module_text)
        descriptors: Sequence[ParameterDescriptor] = signature.parameters
        should_process = signature.supports_should_process
    else:
        descriptors = parameters
        should_process = False
    if supports_should_process is not None:
        should_process = supports_should_process

    resolved = resolve_parameters(descriptors, options)
    specs = [
        to_parameter_spec(item.source.name, item.descriptor, item.default)
        for item in resolved
        if isinstance(item.source, PipelineParameter)
    ]

    if module and not command_name:
        command_name = options.name
    wrapper = generate_wrapper_script(
        resolved,
        options.build_system,
        script_text=script_text,
        module=module,
        command_name=command_name,
        supports_should_process=should_process,
    )
    step = emit_powershell_step(options, wrapper, specs)
    logger.info(
        f"Converted step '{options.name}' for {options.build_system.value}: "
        f"{len(resolved)} bound parameter(s), {len(specs)} pipeline parameter(s)."
    )
    return ConversionResult(step=step, parameters=specs, wrapper_script=wrapper)
