"""Custom exception hierarchy for setup-ai.

All setup-ai exceptions derive from SetupAIError. Each exception
carries an optional ``context`` dict with structured metadata
(backend name, model, config key, etc.) that the CLI error
handler can render.

Capability errors are raised inside the provider layer only. The
synthesizer converts them into failure values, so nothing above
``setup_ai.analysis.synthesizer`` ever sees them.

Exception hierarchy::

    SetupAIError
    ├── CapabilityError
    │   ├── CapabilityUnavailableError
    │   ├── CapabilityAuthError
    │   ├── CapabilityQuotaError
    │   ├── CapabilityModelError
    │   └── CapabilityTimeoutError
    ├── AnalysisValidationError
    └── ConfigError
"""
from __future__ import annotations

from typing import Optional


class SetupAIError(Exception):
    """Base class for all setup-ai exceptions.

    Args:
        message: Human-readable error description.
        context: Optional dict of structured metadata.
    """

    exit_code: int = 1

    def __init__(self, message: str, context: Optional[dict] = None):
        self.context = context or {}
        super().__init__(message)


# ── Capability Errors ──────────────────────────────────────────────

class CapabilityError(SetupAIError):
    """Base class for external reasoning capability errors."""

    def __init__(
        self,
        message: str,
        backend: str = "",
        model: str = "",
        context: Optional[dict] = None,
    ):
        ctx = {"backend": backend, "model": model}
        if context:
            ctx.update(context)
        super().__init__(message, context=ctx)


class CapabilityUnavailableError(CapabilityError):
    """Raised when the capability is not installed or not configured."""
    pass


class CapabilityAuthError(CapabilityError):
    """Raised when credentials are missing, invalid or expired."""
    pass


class CapabilityQuotaError(CapabilityError):
    """Raised when a rate limit or quota is exceeded."""
    pass


class CapabilityModelError(CapabilityError):
    """Raised when the requested model does not exist."""
    pass


class CapabilityTimeoutError(CapabilityError):
    """Raised when the capability does not answer in time."""
    pass


# ── Validation Errors ──────────────────────────────────────────────

class AnalysisValidationError(SetupAIError):
    """Raised when a payload does not satisfy the analysis contract."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        summary = "; ".join(self.errors[:3])
        if len(self.errors) > 3:
            summary += f" (+{len(self.errors) - 3} more)"
        super().__init__(
            f"Invalid analysis: {summary}",
            context={"errors": self.errors},
        )


class ConfigError(SetupAIError):
    """Raised when configuration is invalid or missing."""
    pass
