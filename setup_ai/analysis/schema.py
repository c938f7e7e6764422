"""Versioned output-schema descriptor shared by synthesizer and validator.

The JSON Schema handed to the reasoning service is generated from the
same constants the validator enforces.
"""
from __future__ import annotations

import json
from typing import Optional

from .models import (
    ARCHITECTURES,
    KNOWN_HOOK_STEPS,
    KNOWN_RULES,
    MAX_GUIDANCE_LENGTH,
    MAX_PATHS,
)

SCHEMA_VERSION = 1

PATH_FIELDS: tuple[str, ...] = ("apiPaths", "dbPaths", "testPaths")

REQUIRED_FIELDS: tuple[str, ...] = (
    "detectedArchitecture",
    "apiPaths",
    "dbPaths",
    "testPaths",
    "architectureGuidance",
    "recommendedRules",
    "hookSteps",
)


def _path_list() -> dict:
    return {"type": "array", "items": {"type": "string"}, "maxItems": MAX_PATHS}


def build_schema() -> dict:
    """Return the JSON Schema for an analysis payload."""
    return {
        "type": "object",
        "required": list(REQUIRED_FIELDS),
        "properties": {
            "detectedArchitecture": {"type": "string", "enum": list(ARCHITECTURES)},
            "apiPaths": _path_list(),
            "dbPaths": _path_list(),
            "testPaths": _path_list(),
            "architectureGuidance": {"type": "string", "maxLength": MAX_GUIDANCE_LENGTH},
            "recommendedRules": {
                "type": "array",
                "items": {"type": "string", "enum": list(KNOWN_RULES)},
            },
            "hookSteps": {
                "type": "array",
                "items": {"type": "string", "enum": list(KNOWN_HOOK_STEPS)},
            },
        },
    }


ANALYSIS_SCHEMA: dict = build_schema()


def schema_json(schema: Optional[dict] = None) -> str:
    """Compact JSON rendering, as passed on the command line."""
    return json.dumps(ANALYSIS_SCHEMA if schema is None else schema, separators=(",", ":"))
