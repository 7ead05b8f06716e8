"""
Decide where each script parameter gets its value from.

Candidate names are tried disambiguated first (``<step>_<param>``), then
bare (``<param>``). The first rule that applies wins:

1. excluded by a wildcard → the parameter is dropped
2. caller default for the disambiguated name
3. caller default for the bare name
4. constant default declared in the script
5. (Azure DevOps only) variable wildcard → pipeline variable
6. environment wildcard → environment variable
7. otherwise → new pipeline parameter, named disambiguated when it matches
   a unique wildcard

Rules 2-4 only supply the default of the pipeline parameter from rule 7;
they never stop rules 5 and 6 from applying.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ps2pipeline.models import (
    ConversionOptions,
    EnvironmentVariable,
    LiteralDefault,
    ParameterDescriptor,
    PipelineParameter,
    ResolvedParameter,
    Variable,
)
from ps2pipeline.utils.wildcards import is_excluded, wildcard_match

__all__ = ["candidate_names", "resolve_default", "resolve_parameter", "resolve_parameters"]

logger = logging.getLogger(__name__)


def candidate_names(step_name: str, parameter_name: str) -> tuple[str, str]:
    """
    Names a parameter may be known by, most specific first.

    Examples:
        >>> candidate_names("Build", "Version")
        ('Build_Version', 'Version')
    """
    return f"{step_name}_{parameter_name}", parameter_name


def _stringify(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ";".join(_stringify(item) for item in value)
    return str(value)


def resolve_default(
    descriptor: ParameterDescriptor, names: Iterable[str], options: ConversionOptions
) -> LiteralDefault | None:
    """Caller supplied default by disambiguated then bare name, then the script's own default.

    Names compare case-insensitively, like PowerShell parameter names.
    """
    defaults = options.default_parameters or {}
    folded = {str(key).casefold(): value for key, value in defaults.items()}
    for name in names:
        if name in defaults:
            return LiteralDefault(_stringify(defaults[name]))
        if name.casefold() in folded:
            return LiteralDefault(_stringify(folded[name.casefold()]))
    if descriptor.default_literal is not None:
        return LiteralDefault(descriptor.default_literal)
    return None


def resolve_parameter(descriptor: ParameterDescriptor, options: ConversionOptions) -> ResolvedParameter | None:
    """Binding for one parameter, or ``None`` when it is excluded."""
    names = candidate_names(options.name, descriptor.name)

    if is_excluded(names, options.exclude_parameters):
        logger.debug("Excluding parameter %s", descriptor.name)
        return None

    default = resolve_default(descriptor, names, options)

    if options.build_system.supports_variables:
        matched = wildcard_match(names, options.variable_parameters)
        if matched:
            logger.debug("Parameter %s bound to variable %s", descriptor.name, matched)
            return ResolvedParameter(descriptor, Variable(matched), default)

    matched = wildcard_match(names, options.environment_parameters)
    if matched:
        logger.debug("Parameter %s bound to environment variable %s", descriptor.name, matched)
        return ResolvedParameter(descriptor, EnvironmentVariable(matched), default)

    unique = wildcard_match(names, options.unique_parameters)
    parameter_name = names[0] if unique else names[1]
    logger.debug("Parameter %s bound to pipeline parameter %s", descriptor.name, parameter_name)
    return ResolvedParameter(descriptor, PipelineParameter(parameter_name, descriptor), default)


def resolve_parameters(
    descriptors: Iterable[ParameterDescriptor], options: ConversionOptions
) -> list[ResolvedParameter]:
    """Resolve every descriptor, keeping declaration order and dropping excluded ones."""
    resolved = []
    for descriptor in descriptors:
        binding = resolve_parameter(descriptor, options)
        if binding is not None:
            resolved.append(binding)
    return resolved
