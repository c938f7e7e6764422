"""Project analysis: detection, AI synthesis, validation and fallback."""

from .defaults import architecture_notes, resolve_layout
from .detector import detect_project
from .models import Analysis, DetectionResult, ProjectLayout, SynthesisOutcome
from .pipeline import analyze

__all__ = [
    "Analysis",
    "DetectionResult",
    "ProjectLayout",
    "SynthesisOutcome",
    "analyze",
    "architecture_notes",
    "detect_project",
    "resolve_layout",
]
