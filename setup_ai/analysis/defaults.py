"""Hardcoded defaults and the fallback consumers apply when there is no Analysis."""
from __future__ import annotations

from typing import Optional

from .models import KNOWN_HOOK_STEPS, KNOWN_RULES, Analysis, ProjectLayout

DEFAULT_ARCHITECTURE = "skip"
DEFAULT_API_PATHS: tuple[str, ...] = ("src/api/**", "src/routes/**")
DEFAULT_DB_PATHS: tuple[str, ...] = ("src/db/**", "src/models/**", "**/migrations/**")
DEFAULT_TEST_PATHS: tuple[str, ...] = ("test/**", "tests/**", "**/*.test.*")
DEFAULT_RULES: tuple[str, ...] = KNOWN_RULES
DEFAULT_HOOK_STEPS: tuple[str, ...] = KNOWN_HOOK_STEPS


def resolve_layout(analysis: Optional[Analysis]) -> ProjectLayout:
    """Fold an analysis, or its absence, into generator inputs.

    Absence means defaults across the board. A present analysis is used
    as is, including empty path lists.
    """
    if analysis is None:
        return ProjectLayout(
            architecture=DEFAULT_ARCHITECTURE,
            api_paths=list(DEFAULT_API_PATHS),
            db_paths=list(DEFAULT_DB_PATHS),
            test_paths=list(DEFAULT_TEST_PATHS),
            rules=list(DEFAULT_RULES),
            hook_steps=list(DEFAULT_HOOK_STEPS),
        )

    return ProjectLayout(
        architecture=analysis.detected_architecture,
        api_paths=list(analysis.api_paths),
        db_paths=list(analysis.db_paths),
        test_paths=list(analysis.test_paths),
        rules=list(analysis.recommended_rules),
        hook_steps=list(analysis.hook_steps),
        guidance=analysis.architecture_guidance,
        source="analysis",
    )


def architecture_notes(analysis: Optional[Analysis]) -> str:
    """Markdown section for generated docs, or "" when there is nothing to say."""
    if analysis is None or not analysis.architecture_guidance.strip():
        return ""
    return f"## Architecture Notes\n\n{analysis.architecture_guidance.strip()}\n"

