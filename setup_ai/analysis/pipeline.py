"""AI-assisted project analysis with graceful degradation.

``analyze`` composes the four steps:

1. Detect deterministically (filesystem scan)
2. Synthesize with the reasoning service (schema-constrained)
3. Validate structurally, retrying once
4. Return the Analysis, or None

Every failure (analysis disabled, non-interactive run, missing or
unauthenticated capability, network/timeout failure, invalid responses)
ends in None. Callers fall back to hardcoded defaults.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from setup_ai.errors import SetupAIError

from .detector import detect_project
from .models import Analysis
from .schema import ANALYSIS_SCHEMA
from .synthesizer import Synthesizer, build_synthesizer
from .validator import LoopState, ValidationLoop

logger = logging.getLogger("setup_ai.analysis")


def analyze(
    project_root: Path,
    *,
    synthesizer: Optional[Synthesizer] = None,
    config=None,
) -> Optional[Analysis]:
    """Analyze ``project_root`` and return a validated Analysis or None.

    Args:
        project_root: Root directory of the project.
        synthesizer: Optional synthesizer to use instead of the configured
            backend. Capability checks are skipped when one is given.
        config: Optional ConfigService; defaults to the global one.

    Never raises.
    """
    from setup_ai.core.config_service import get_config_service

    try:
        config = config or get_config_service()
        root = Path(project_root)

        if not config.analysis_enabled():
            return _skip("analysis is disabled in configuration")
        if config.is_non_interactive():
            return _skip("running non-interactively")
        if not root.is_dir():
            return _skip(f"{root} is not a directory")

        detection = detect_project(root)
        logger.debug("Detection for %s: %s", root, detection)

        if synthesizer is None:
            synthesizer = build_synthesizer(root, config=config)
            if synthesizer is None:
                return _skip("no reasoning service is available")

        loop = ValidationLoop(synthesizer, ANALYSIS_SCHEMA)
        analysis = loop.run(detection)
    except (SetupAIError, OSError) as e:
        return _skip(str(e))
    except Exception as e:
        logger.debug("Unexpected analysis failure", exc_info=True)
        return _skip(f"unexpected error: {e}")

    if loop.state is LoopState.ACCEPTED:
        logger.info("AI analysis accepted after %d attempt(s)", loop.attempts)
        return analysis
    return _skip(f"no valid response after {loop.attempts} attempt(s)")


def _skip(reason: str) -> None:
    logger.info("AI-assisted analysis skipped: %s", reason)
    return None
