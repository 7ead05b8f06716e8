"""
Assemble converted steps into a complete pipeline document and render it as YAML.
"""

from __future__ import annotations

import dataclasses
import io
import logging
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML, CommentedMap
from ruamel.yaml.comments import CommentedSeq
from ruamel.yaml.scalarstring import LiteralScalarString

from ps2pipeline.commands.convert_step import convert_build_step, read_file_text
from ps2pipeline.models import BuildSystem, ConversionOptions, ConversionResult, PipelineParameterSpec

__all__ = ["collect_parameters", "build_pipeline", "to_yaml_tree", "dump_yaml", "compile_files"]

logger = logging.getLogger(__name__)


def collect_parameters(results: Iterable[ConversionResult]) -> list[PipelineParameterSpec]:
    """All pipeline parameters of *results*; the first declaration of a name wins."""
    seen: dict[str, PipelineParameterSpec] = {}
    for result in results:
        for spec in result.parameters:
            if spec.name in seen:
                if seen[spec.name] != spec:
                    logger.warning(f"Parameter '{spec.name}' declared differently by two steps, keeping the first.")
                continue
            seen[spec.name] = spec
    return list(seen.values())


def build_pipeline(
    results: Sequence[ConversionResult],
    build_system: BuildSystem,
    pool_vm_image: str | None = None,
    job_name: str = "build",
    checkout: bool = True,
) -> dict[str, Any]:
    """
    Wrap steps into a pipeline.

    Azure DevOps: step level ``parameters`` are lifted to the top level.
    GitHub: pipeline parameters become ``workflow_dispatch`` inputs.
    """
    parameters = collect_parameters(results)
    if build_system is BuildSystem.GITHUB:
        inputs = {spec.name: spec.to_workflow_input() for spec in parameters}
        steps: list[dict[str, Any]] = [{"uses": "actions/checkout@v4"}] if checkout else []
        steps.extend(dict(result.step) for result in results)
        return {
            "on": {"workflow_dispatch": {"inputs": inputs} if inputs else None},
            "jobs": {job_name: {"runs-on": pool_vm_image or "ubuntu-latest", "steps": steps}},
        }

    document: dict[str, Any] = {}
    if pool_vm_image:
        document["pool"] = {"vmImage": pool_vm_image}
    if parameters:
        document["parameters"] = [spec.to_dict() for spec in parameters]
    document["steps"] = [{k: v for k, v in result.step.items() if k != "parameters"} for result in results]
    return document


def to_yaml_tree(node: Any) -> Any:
    """Convert to ruamel containers; multi-line strings become literal blocks."""
    if isinstance(node, dict):
        mapping = CommentedMap()
        for key, value in node.items():
            mapping[key] = to_yaml_tree(value)
        return mapping
    if isinstance(node, (list, tuple)):
        return CommentedSeq(to_yaml_tree(item) for item in node)
    if isinstance(node, str) and "\n" in node:
        return LiteralScalarString(node)
    return node


def dump_yaml(document: Any) -> str:
    yaml = YAML()
    yaml.width = 4096
    yaml.indent(mapping=2, sequence=4, offset=2)
    stream = io.StringIO()
    yaml.dump(to_yaml_tree(document), stream)
    return stream.getvalue()


def compile_files(
    paths: Sequence[str | Path],
    options: ConversionOptions,
    reader: Callable[[str | Path], str] = read_file_text,
) -> dict[str, Any]:
    """Convert every file into a step named after the file and build the pipeline.

    Files with unsupported extensions are skipped with a warning.
    """
    results = []
    for path in paths:
        step_options = dataclasses.replace(options, name=Path(path).stem)
        result = convert_build_step(step_options, path=path, reader=reader)
        if result is None:
            continue
        results.append(result)
    if not results:
        raise ValueError("No steps were produced. Check input paths and file extensions.")
    logger.info(f"Compiled {len(results)} step(s) into a {options.build_system.value} pipeline.")
    return build_pipeline(results, options.build_system, pool_vm_image=options.pool_vm_image)
