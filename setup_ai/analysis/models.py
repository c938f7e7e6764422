"""Data models for project analysis.

``DetectionResult`` is the local, deterministic signal summary.
``Analysis`` is the validated output contract: an instance exists only
after a payload passed every check in ``setup_ai.analysis.validator``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

ARCHITECTURES: tuple[str, ...] = ("monolith", "2-tier", "3-tier", "microservices")

KNOWN_RULES: tuple[str, ...] = (
    "general",
    "docs",
    "testing",
    "git",
    "security",
    "config",
    "api",
    "database",
)

KNOWN_HOOK_STEPS: tuple[str, ...] = ("format", "lint", "typecheck", "build", "test")

MAX_PATHS = 10
MAX_GUIDANCE_LENGTH = 500

# Total synthesizer invocations per analyze() call: the first try plus one retry.
MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class DetectionResult:
    """Filesystem signals for one project root."""
    has_package_json: bool = False
    has_ts_config: bool = False
    has_docker_compose: bool = False
    has_prisma_schema: bool = False
    has_graphql_config: bool = False
    has_pyproject: bool = False
    directories: tuple[str, ...] = ()
    config_files: tuple[str, ...] = ()
    frameworks: tuple[str, ...] = ()
    orms: tuple[str, ...] = ()
    test_frameworks: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Render the summary sent to the reasoning service."""
        return {
            "hasPackageJson": self.has_package_json,
            "hasTsConfig": self.has_ts_config,
            "hasDockerCompose": self.has_docker_compose,
            "hasPrismaSchema": self.has_prisma_schema,
            "hasGraphqlConfig": self.has_graphql_config,
            "hasPyproject": self.has_pyproject,
            "directories": list(self.directories),
            "configFiles": list(self.config_files),
            "frameworks": list(self.frameworks),
            "orms": list(self.orms),
            "testFrameworks": list(self.test_frameworks),
        }


@dataclass(frozen=True)
class Analysis:
    """A schema-validated interpretation of a project's architecture.

    Build instances through ``validator.validate_payload``; the
    constructor itself does not re-check the contract.
    """
    detected_architecture: str
    api_paths: tuple[str, ...] = ()
    db_paths: tuple[str, ...] = ()
    test_paths: tuple[str, ...] = ()
    architecture_guidance: str = ""
    recommended_rules: tuple[str, ...] = ()
    hook_steps: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Render the analysis with its wire (camelCase) field names."""
        return {
            "detectedArchitecture": self.detected_architecture,
            "apiPaths": list(self.api_paths),
            "dbPaths": list(self.db_paths),
            "testPaths": list(self.test_paths),
            "architectureGuidance": self.architecture_guidance,
            "recommendedRules": list(self.recommended_rules),
            "hookSteps": list(self.hook_steps),
        }


@dataclass(frozen=True)
class SynthesisOutcome:
    """Result of one synthesizer invocation: raw text, or a failure reason."""
    text: Optional[str] = None
    failure: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.text is not None

    @classmethod
    def success(cls, text: str) -> SynthesisOutcome:
        return cls(text=text)

    @classmethod
    def failed(cls, reason: str) -> SynthesisOutcome:
        return cls(failure=reason)


@dataclass
class ProjectLayout:
    """Values consumed by the rule, hook and documentation generators."""
    architecture: str
    api_paths: list[str] = field(default_factory=list)
    db_paths: list[str] = field(default_factory=list)
    test_paths: list[str] = field(default_factory=list)
    rules: list[str] = field(default_factory=list)
    hook_steps: list[str] = field(default_factory=list)
    guidance: str = ""
    source: str = "defaults"  # "analysis" or "defaults"
