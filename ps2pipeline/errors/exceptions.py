"""Exceptions shared across entire library"""

from __future__ import annotations


class Ps2PipelineError(Exception):
    """Base error for all errors defined in ps2pipeline"""


class NotFound(Ps2PipelineError):
    """Requested script, module or function does not exist."""


class ConfigInvalid(Ps2PipelineError):
    """Configuration file is malformed or invalid."""


class ConfigurationError(Ps2PipelineError):
    """A mandatory input for a conversion is missing or contradictory."""


class IntrospectionError(Ps2PipelineError):
    """The parameter block of a script could not be read."""


class GenerationFailure(Ps2PipelineError):
    """Generated wrapper script is not valid PowerShell syntax."""

    def __init__(self, message: str, generated_text: str) -> None:
        super().__init__(f"{message}\n--- generated script ---\n{generated_text}")
        self.generated_text = generated_text
