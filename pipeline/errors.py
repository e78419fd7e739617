"""Exception hierarchy for the pipeline.

Only :class:`ConfigurationError`, :class:`ValidationError` and
:class:`MissingCheckpointError` ever escape a stage.  Provider and parse
failures are absorbed into the per-item result record.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class ProviderError(PipelineError):
    """An external search, browser or oracle call failed or timed out."""

    def __init__(self, provider: str, detail: str) -> None:
        super().__init__(f"{provider}: {detail}")
        self.provider = provider
        self.detail = detail


class ParseError(PipelineError):
    """The oracle response was not valid JSON or lacked required fields."""


class ConfigurationError(PipelineError):
    """A required credential or setting is missing."""


class ValidationError(PipelineError):
    """User input (e.g. the single-URL target) is malformed."""


class MissingCheckpointError(PipelineError):
    """A stage's input checkpoint has not been written yet."""

    def __init__(self, stage: str, path: str, hint: str) -> None:
        super().__init__(f"{stage} results not found at {path}. {hint}")
        self.stage = stage
        self.path = path
        self.hint = hint
