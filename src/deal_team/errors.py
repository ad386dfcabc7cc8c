"""
Custom exceptions and error handling for the Deal Team orchestrator.

Provides:
- Typed exception hierarchy for different failure modes
- Error context preservation for debugging
- Classification of raw model-provider exceptions
"""

from typing import Any


class DealTeamError(Exception):
    """Base exception for all deal team errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


# =============================================================================
# Client Errors
# =============================================================================


class ClientError(DealTeamError):
    """Base class for client-related errors."""

    pass


class ModelClientError(ClientError):
    """Error from a hosted model API call."""

    pass


class ModelRateLimitError(ModelClientError):
    """Rate limit exceeded on the model API."""

    pass


class ModelPermissionError(ModelClientError):
    """Permission denied or quota exhausted for the requested model."""

    pass


class ModelResponseError(ModelClientError):
    """Model refused the request or returned an unusable response."""

    pass


class StoreError(ClientError):
    """Error reading or writing the durable key-value store."""

    pass


# =============================================================================
# Pipeline Errors
# =============================================================================


class PipelineError(DealTeamError):
    """Base class for pipeline-related errors."""

    pass


class ModelOutputError(PipelineError):
    """Model output could not be turned into the expected shape."""

    pass


class JSONParseError(ModelOutputError):
    """
    JSON could not be parsed even after repair.

    Keeps both the text that was first parsed and the repaired text so the
    failing response can be inspected from the step log.
    """

    def __init__(
        self,
        message: str,
        original_error: str,
        raw_text: str,
        repaired_text: str,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.original_error = original_error
        self.raw_text = raw_text
        self.repaired_text = repaired_text


class StrategyError(PipelineError):
    """Error while the Managing Director sets strategy or gives an opinion."""

    pass


class SourcingError(PipelineError):
    """Error during scouting, target selection, deep dive or HQ verification."""

    pass


class NoCandidatesError(SourcingError):
    """Sourcing finished but produced no candidate companies."""

    pass


class StructuringError(PipelineError):
    """Error while building the financial model and memo."""

    pass


class DiligenceError(PipelineError):
    """Error during document analysis or portfolio ingestion."""

    pass


class DesignError(PipelineError):
    """Error while drafting a deliverable."""

    pass


class PipelineBusyError(PipelineError):
    """A pipeline run is already in progress."""

    pass


# =============================================================================
# Error Handling Utilities
# =============================================================================

PERMISSION_MARKERS = ('403', 'permission_denied', 'permission denied', 'quota')


def is_permission_or_quota_error(exc: BaseException) -> bool:
    """True for errors that warrant retrying against a fallback model."""
    if isinstance(exc, ModelPermissionError):
        return True
    error_str = str(exc).lower()
    return any(marker in error_str for marker in PERMISSION_MARKERS)


def wrap_model_error(exc: Exception, context: dict[str, Any] | None = None) -> ModelClientError:
    """
    Wrap a model-provider exception in our typed error hierarchy.

    Args:
        exc: The original exception
        context: Additional context for debugging

    Returns:
        Typed ModelClientError subclass
    """
    error_str = str(exc).lower()
    status_code = getattr(exc, 'status_code', None)
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    if status_code == 429 and 'quota' not in error_str:
        return ModelRateLimitError(f"Model rate limit exceeded: {exc}", context=ctx)
    if status_code == 403 or any(marker in error_str for marker in PERMISSION_MARKERS):
        return ModelPermissionError(f"Model permission denied: {exc}", context=ctx)
    if 'rate limit' in error_str or 'rate_limit' in error_str:
        return ModelRateLimitError(f"Model rate limit exceeded: {exc}", context=ctx)
    if 'content policy' in error_str or 'refused' in error_str:
        return ModelResponseError(f"Model refused request: {exc}", context=ctx)
    return ModelClientError(f"Model API error: {exc}", context=ctx)
