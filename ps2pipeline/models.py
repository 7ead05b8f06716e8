"""Value types passed between the introspector, resolver, mapper and emitters.

Everything here is immutable and lives for a single conversion call.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Union

__all__ = [
    "SemanticType",
    "ParameterDescriptor",
    "Variable",
    "EnvironmentVariable",
    "PipelineParameter",
    "LiteralDefault",
    "BindingSource",
    "ResolvedParameter",
    "PipelineParameterSpec",
    "BuildSystem",
    "ConversionOptions",
    "ConversionResult",
]


class SemanticType(enum.Enum):
    """The part of the PowerShell type system a pipeline schema cares about."""

    BOOLEAN = "Boolean"
    NUMBER = "Number"
    TEXT = "Text"
    ARRAY_OF_TEXT = "ArrayOfText"
    ARRAY_OF_NUMBER = "ArrayOfNumber"
    SCRIPT_FRAGMENT = "ScriptFragment"
    ARRAY_OF_SCRIPT_FRAGMENT = "ArrayOfScriptFragment"
    ENUM = "Enum"
    OPAQUE = "Opaque"


@dataclass(frozen=True)
class ParameterDescriptor:
    """One declared parameter of a script, in declaration order.

    ``type_name`` keeps the lower-cased type constraint as written
    (e.g. ``"string[]"``) so opaque types can still be classified.
    """

    name: str
    type: SemanticType = SemanticType.OPAQUE
    mandatory: bool = False
    default_literal: Optional[str] = None
    valid_values: Optional[tuple[str, ...]] = None
    type_name: str = ""


@dataclass(frozen=True)
class Variable:
    """Bound to a pipeline variable (ADO macro syntax)."""

    name: str


@dataclass(frozen=True)
class EnvironmentVariable:
    """Bound to an environment variable of the agent."""

    name: str


@dataclass(frozen=True)
class PipelineParameter:
    """Bound to a newly declared pipeline input parameter."""

    name: str
    descriptor: ParameterDescriptor


@dataclass(frozen=True)
class LiteralDefault:
    value: str


BindingSource = Union[Variable, EnvironmentVariable, PipelineParameter, LiteralDefault]


@dataclass(frozen=True)
class ResolvedParameter:
    """A descriptor together with the source chosen for it.

    ``default`` is advisory: it only ends up in the document when the
    source is a :class:`PipelineParameter`.
    """

    descriptor: ParameterDescriptor
    source: BindingSource
    default: Optional[LiteralDefault] = None


@dataclass(frozen=True)
class PipelineParameterSpec:
    """A parameter declaration emitted into the pipeline document."""

    name: str
    type: str
    values: Optional[tuple[str, ...]] = None
    default: Optional[str] = None
    mandatory: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Azure DevOps ``parameters:`` entry."""
        out: dict[str, Any] = {"name": self.name, "type": self.type}
        if self.default is not None:
            out["default"] = self.default
        if self.values is not None:
            out["values"] = list(self.values)
        return out

    def to_workflow_input(self) -> dict[str, Any]:
        """GitHub ``workflow_dispatch`` input entry (keyed by name by the caller)."""
        if self.values is not None:
            kind = "choice"
        elif self.type in ("boolean", "number"):
            kind = self.type
        else:
            kind = "string"
        out: dict[str, Any] = {"required": self.mandatory}
        # boolean and number inputs reject an empty default
        if self.default is not None and not (self.default == "" and kind in ("boolean", "number")):
            if kind == "boolean":
                out["default"] = self.default.strip().lower() in ("true", "1")
            else:
                out["default"] = self.default
        out["type"] = kind
        if self.values is not None:
            out["options"] = list(self.values)
        return out


class BuildSystem(enum.Enum):
    ADO = "ADO"
    GITHUB = "GitHub"

    @classmethod
    def from_name(cls, name: Union[str, BuildSystem]) -> BuildSystem:
        """Accepts the enum, its value, or the long names used by pipeline tooling.

        Examples:
            >>> BuildSystem.from_name("ado")
            <BuildSystem.ADO: 'ADO'>
            >>> BuildSystem.from_name("GitHubWorkflow")
            <BuildSystem.GITHUB: 'GitHub'>
        """
        if isinstance(name, BuildSystem):
            return name
        key = str(name).strip().lower()
        if key in ("ado", "adopipeline", "azure", "azuredevops", "azure-devops"):
            return cls.ADO
        if key in ("github", "githubworkflow", "github-actions", "githubactions", "gha"):
            return cls.GITHUB
        raise ValueError(f"Unknown build system: {name!r}")

    @property
    def supports_variables(self) -> bool:
        """Only Azure DevOps has ``$(name)`` pipeline variable macros."""
        return self is BuildSystem.ADO


@dataclass(frozen=True)
class ConversionOptions:
    """Everything a conversion needs besides the script itself.

    Passed explicitly to every call; nothing here is read from globals.
    """

    name: str
    build_system: BuildSystem = BuildSystem.ADO
    variable_parameters: Sequence[str] = ()
    environment_parameters: Sequence[str] = ()
    unique_parameters: Sequence[str] = ()
    exclude_parameters: Sequence[str] = ()
    default_parameters: Mapping[str, Any] = field(default_factory=dict)
    pool_vm_image: Optional[str] = None
    use_system_access_token: bool = False
    enum_types: Mapping[str, Sequence[str]] = field(default_factory=dict)


@dataclass
class ConversionResult:
    """The step document plus the parameter declarations it needs.

    ``parameters`` is also embedded in ADO steps; for GitHub it becomes the
    ``workflow_dispatch`` inputs of the workflow.
    """

    step: dict[str, Any]
    parameters: list[PipelineParameterSpec] = field(default_factory=list)
    wrapper_script: Optional[str] = None
