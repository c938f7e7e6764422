"""Validation and bounded retry.

``parse_candidate`` and ``validate_payload`` turn raw synthesizer text into
an Analysis or a list of errors. ``ValidationLoop`` drives the synthesizer
through at most two attempts as an explicit state machine::

    REQUESTED -> VALIDATING -> ACCEPTED
                            -> RETRY_REQUESTED -> VALIDATING -> ACCEPTED | FAILED

An invocation failure in REQUESTED or RETRY_REQUESTED goes straight to
FAILED. Only validation failures earn the single retry.
"""
from __future__ import annotations

import enum
import json
import logging
from typing import Any, Optional

from setup_ai.errors import AnalysisValidationError

from .models import (
    ARCHITECTURES,
    KNOWN_HOOK_STEPS,
    KNOWN_RULES,
    MAX_ATTEMPTS,
    MAX_GUIDANCE_LENGTH,
    MAX_PATHS,
    Analysis,
    DetectionResult,
    SynthesisOutcome,
)
from .schema import ANALYSIS_SCHEMA, PATH_FIELDS, REQUIRED_FIELDS
from .synthesizer import Synthesizer

logger = logging.getLogger("setup_ai.validator")


def parse_candidate(raw: str) -> tuple[Optional[dict], list[str]]:
    """Parse raw synthesizer text into a payload dict.

    Accepts a bare JSON object, JSON inside markdown fences, or the claude
    CLI result envelope (``structured_output`` object or ``result`` string).
    """
    data, error = _load_json(raw)
    if error:
        return None, [error]

    if isinstance(data, dict) and "structured_output" in data:
        data = data["structured_output"]
    elif isinstance(data, dict) and isinstance(data.get("result"), str) and data.get("type") == "result":
        data, error = _load_json(data["result"])
        if error:
            return None, [f"result envelope: {error}"]

    if not isinstance(data, dict):
        return None, [f"expected a JSON object, got {type(data).__name__}"]
    return data, []


def validate_payload(data: Any) -> tuple[Optional[Analysis], list[str]]:
    """Check a parsed payload field by field.

    Returns the Analysis and no errors, or None and every violation found.
    Empty path lists are valid. Oversized lists are errors, never truncated.
    """
    if not isinstance(data, dict):
        return None, [f"expected a JSON object, got {type(data).__name__}"]

    errors: list[str] = []
    missing = [name for name in REQUIRED_FIELDS if name not in data]
    if missing:
        errors.append(f"missing required fields: {', '.join(missing)}")

    architecture = data.get("detectedArchitecture")
    if "detectedArchitecture" in data and architecture not in ARCHITECTURES:
        errors.append(
            f"detectedArchitecture: {architecture!r} is not one of {', '.join(ARCHITECTURES)}"
        )

    for name in PATH_FIELDS:
        if name in data:
            errors.extend(_check_string_list(name, data[name], max_items=MAX_PATHS))

    guidance = data.get("architectureGuidance")
    if "architectureGuidance" in data:
        if not isinstance(guidance, str):
            errors.append(f"architectureGuidance: expected a string, got {type(guidance).__name__}")
        elif len(guidance) > MAX_GUIDANCE_LENGTH:
            errors.append(
                f"architectureGuidance: {len(guidance)} characters exceeds the maximum of {MAX_GUIDANCE_LENGTH}"
            )

    if "recommendedRules" in data:
        errors.extend(_check_string_list("recommendedRules", data["recommendedRules"], allowed=KNOWN_RULES))
    if "hookSteps" in data:
        errors.extend(_check_string_list("hookSteps", data["hookSteps"], allowed=KNOWN_HOOK_STEPS))

    if errors:
        return None, errors

    return Analysis(
        detected_architecture=architecture,
        api_paths=tuple(data["apiPaths"]),
        db_paths=tuple(data["dbPaths"]),
        test_paths=tuple(data["testPaths"]),
        architecture_guidance=guidance,
        recommended_rules=tuple(data["recommendedRules"]),
        hook_steps=tuple(data["hookSteps"]),
    ), []


def check_candidate(raw: str) -> tuple[Optional[Analysis], list[str]]:
    """Parse then validate; a parse failure is reported like any validation failure."""
    data, errors = parse_candidate(raw)
    if errors:
        return None, errors
    return validate_payload(data)


def require_valid(data: Any) -> Analysis:
    """Validate a payload, raising AnalysisValidationError on any violation."""
    analysis, errors = validate_payload(data)
    if analysis is None:
        raise AnalysisValidationError(errors)
    return analysis


class LoopState(enum.Enum):
    REQUESTED = "requested"
    VALIDATING = "validating"
    RETRY_REQUESTED = "retry_requested"
    ACCEPTED = "accepted"
    FAILED = "failed"


TERMINAL_STATES = frozenset({LoopState.ACCEPTED, LoopState.FAILED})


class ValidationLoop:
    """Drive a synthesizer to a validated Analysis in at most MAX_ATTEMPTS calls.

    One instance serves one ``run``. ``attempts``, ``state`` and ``errors``
    are left in place afterwards for inspection.
    """

    def __init__(self, synthesizer: Synthesizer, schema: Optional[dict] = None):
        self.synthesizer = synthesizer
        self.schema = schema or ANALYSIS_SCHEMA
        self.state = LoopState.REQUESTED
        self.attempts = 0
        self.errors: list[str] = []
        self._outcome: Optional[SynthesisOutcome] = None
        self._result: Optional[Analysis] = None

    def run(self, detection: DetectionResult) -> Optional[Analysis]:
        while self.state not in TERMINAL_STATES:
            if self.state in (LoopState.REQUESTED, LoopState.RETRY_REQUESTED):
                self._request(detection)
            elif self.state is LoopState.VALIDATING:
                self._validate()
        return self._result

    def _request(self, detection: DetectionResult) -> None:
        previous = self.errors if self.state is LoopState.RETRY_REQUESTED else None
        self.attempts += 1
        outcome = self._invoke(detection, previous)
        if not outcome.ok:
            logger.warning("Analysis attempt %d failed: %s", self.attempts, outcome.failure)
            self.errors = [outcome.failure or "synthesizer returned nothing"]
            self.state = LoopState.FAILED
            return
        self._outcome = outcome
        self.state = LoopState.VALIDATING

    def _validate(self) -> None:
        analysis, errors = check_candidate(self._outcome.text)
        if analysis is not None:
            self._result = analysis
            self.errors = []
            self.state = LoopState.ACCEPTED
            return

        self.errors = errors
        logger.warning(
            "Analysis attempt %d failed validation: %s", self.attempts, "; ".join(errors)
        )
        if self.attempts < MAX_ATTEMPTS:
            self.state = LoopState.RETRY_REQUESTED
        else:
            self.state = LoopState.FAILED

    def _invoke(self, detection: DetectionResult, previous: Optional[list[str]]) -> SynthesisOutcome:
        try:
            outcome = self.synthesizer.synthesize(detection, self.schema, previous_errors=previous)
        except Exception as e:  # an injected synthesizer broke its contract
            logger.warning("Synthesizer raised instead of returning a failure: %s", e)
            return SynthesisOutcome.failed(f"synthesizer raised {type(e).__name__}: {e}")
        if not isinstance(outcome, SynthesisOutcome):
            return SynthesisOutcome.failed(f"synthesizer returned {type(outcome).__name__}")
        return outcome


def _load_json(raw: str) -> tuple[Any, Optional[str]]:
    cleaned = (raw or "").strip()
    if "```" in cleaned:
        lines = [line for line in cleaned.split("\n") if not line.strip().startswith("```")]
        cleaned = "\n".join(lines).strip()
    if not cleaned:
        return None, "empty response"
    try:
        return json.loads(cleaned), None
    except (ValueError, RecursionError) as e:
        return None, f"response is not valid JSON: {e}"


def _check_string_list(
    name: str,
    value: Any,
    max_items: Optional[int] = None,
    allowed: Optional[tuple[str, ...]] = None,
) -> list[str]:
    if not isinstance(value, list):
        return [f"{name}: expected an array, got {type(value).__name__}"]

    errors: list[str] = []
    if max_items is not None and len(value) > max_items:
        errors.append(f"{name}: {len(value)} items exceeds the maximum of {max_items}")
    non_strings = [item for item in value if not isinstance(item, str)]
    if non_strings:
        errors.append(f"{name}: every item must be a string")
    if allowed is not None:
        unknown = [item for item in value if isinstance(item, str) and item not in allowed]
        if unknown:
            errors.append(
                f"{name}: unknown values {', '.join(map(repr, unknown))}; allowed: {', '.join(allowed)}"
            )
    return errors
