"""
Convert parameterized PowerShell scripts into Azure DevOps and GitHub Actions steps.

usage: ps2pipeline [-h] [--version] {convert,pipeline,inspect} ...

positional arguments:
  {convert,pipeline,inspect}
    convert             Convert one script, module command or script file into a pipeline step.
    pipeline            Convert several script files into a complete pipeline document.
    inspect             Show the parameters ps2pipeline reads from a PowerShell script.

options:
  -h, --help            show this help message and exit
  --version             show program's version number and exit
"""

from ps2pipeline.commands.convert_step import convert_build_step, convert_file
from ps2pipeline.models import (
    BuildSystem,
    ConversionOptions,
    ConversionResult,
    ParameterDescriptor,
    PipelineParameterSpec,
    SemanticType,
)

__all__ = [
    "convert_build_step",
    "convert_file",
    "BuildSystem",
    "ConversionOptions",
    "ConversionResult",
    "ParameterDescriptor",
    "PipelineParameterSpec",
    "SemanticType",
]
