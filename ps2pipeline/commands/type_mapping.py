"""Map script parameter types onto pipeline parameter types and runtime coercions."""

from __future__ import annotations

import enum
import logging

from ps2pipeline.models import LiteralDefault, ParameterDescriptor, PipelineParameterSpec, SemanticType

__all__ = ["Coercion", "pipeline_type", "coercion", "valid_values", "to_parameter_spec"]

logger = logging.getLogger(__name__)

# Types that are not modelled but survive a round trip through a string.
_SAFE_OPAQUE_TYPES = {
    "version",
    "system.version",
    "datetime",
    "system.datetime",
    "datetime[]",
    "system.datetime[]",
    "timespan",
    "system.timespan",
}

_STRING_TYPES = {
    SemanticType.TEXT,
    SemanticType.ENUM,
    SemanticType.ARRAY_OF_TEXT,
    SemanticType.ARRAY_OF_NUMBER,
    SemanticType.SCRIPT_FRAGMENT,
    SemanticType.ARRAY_OF_SCRIPT_FRAGMENT,
}


class Coercion(enum.Enum):
    """How the wrapper script turns a bound string back into the declared type."""

    NONE = "none"
    SPLIT = "split"
    SCRIPT_BLOCK = "script_block"
    SCRIPT_BLOCK_ARRAY = "script_block_array"


def pipeline_type(descriptor: ParameterDescriptor) -> str:
    """
    Primitive pipeline type of a parameter.

    Examples:
        >>> pipeline_type(ParameterDescriptor("n", SemanticType.NUMBER))
        'number'
        >>> pipeline_type(ParameterDescriptor("d", SemanticType.OPAQUE, type_name="datetime"))
        'string'
        >>> pipeline_type(ParameterDescriptor("h", SemanticType.OPAQUE, type_name="hashtable"))
        'object'
    """
    if descriptor.type is SemanticType.BOOLEAN:
        return "boolean"
    if descriptor.type is SemanticType.NUMBER:
        return "number"
    if descriptor.type in _STRING_TYPES:
        return "string"
    if descriptor.type is SemanticType.OPAQUE and descriptor.type_name.lower() in _SAFE_OPAQUE_TYPES:
        return "string"
    if descriptor.valid_values is not None:
        return "string"
    return "object"


def coercion(descriptor: ParameterDescriptor) -> Coercion:
    if descriptor.type in (SemanticType.ARRAY_OF_TEXT, SemanticType.ARRAY_OF_NUMBER):
        return Coercion.SPLIT
    if descriptor.type is SemanticType.SCRIPT_FRAGMENT:
        return Coercion.SCRIPT_BLOCK
    if descriptor.type is SemanticType.ARRAY_OF_SCRIPT_FRAGMENT:
        return Coercion.SCRIPT_BLOCK_ARRAY
    type_name = descriptor.type_name.lower()
    if descriptor.type is SemanticType.OPAQUE and type_name.endswith("[]") and type_name in _SAFE_OPAQUE_TYPES:
        return Coercion.SPLIT
    return Coercion.NONE


def valid_values(descriptor: ParameterDescriptor) -> tuple[str, ...] | None:
    """Allowed values; a ValidateSet has already won over enum members during introspection."""
    if descriptor.valid_values is None:
        return None
    return tuple(descriptor.valid_values)


def to_parameter_spec(
    name: str, descriptor: ParameterDescriptor, default: LiteralDefault | None = None
) -> PipelineParameterSpec:
    """
    Build the pipeline parameter declaration for *descriptor*.

    Optional parameters always get a default (empty string when nothing else
    is known), and an empty string is offered as the first allowed value so
    the parameter can be left unset.
    """
    values = valid_values(descriptor)
    default_value = default.value if default is not None else None
    if not descriptor.mandatory:
        if default_value is None:
            default_value = ""
        if values is not None and (not values or values[0] != ""):
            values = ("",) + values
    spec = PipelineParameterSpec(
        name=name,
        type=pipeline_type(descriptor),
        values=values,
        default=default_value,
        mandatory=descriptor.mandatory,
    )
    logger.debug("Declared pipeline parameter %s (%s)", spec.name, spec.type)
    return spec
