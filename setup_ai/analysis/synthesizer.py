"""Synthesizer: obtain a raw analysis candidate from an external reasoning service.

A synthesizer takes a DetectionResult and the output schema and returns a
SynthesisOutcome. Every invocation problem (capability missing, not
authenticated, timeout, non-zero exit) comes back as a failure value.
``synthesize`` never raises to the caller; ``build_synthesizer`` raises
ConfigError for unusable settings.

Two backends:

- ``ClaudeCliSynthesizer`` runs the ``claude`` CLI headless, single turn,
  with a JSON-schema constraint and a read-only tool allowlist.
- ``ProviderSynthesizer`` goes through an ``AIProvider`` (the Anthropic SDK)
  with the schema as a forced tool input.
"""
from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Protocol, Sequence, runtime_checkable

from setup_ai.errors import CapabilityError
from setup_ai.providers.base import AIProvider

from .models import DetectionResult, SynthesisOutcome
from .schema import schema_json

logger = logging.getLogger("setup_ai.synthesizer")

ANALYSIS_SYSTEM_PROMPT = """\
You are a senior software architect configuring AI-assisted development for an
existing codebase. Classify its architecture, list path globs for API, database
and test code, write short architecture guidance, and pick the development rules
and pre-commit quality gate steps that apply. Only use paths that exist in the
project. Do not modify any file."""

# Tools that can only inspect the project.
READ_ONLY_TOOLS: frozenset[str] = frozenset({"Read", "Glob", "Grep", "LS"})

# stderr fragments that mean the CLI is installed but not logged in.
_AUTH_MARKERS: tuple[str, ...] = ("login", "log in", "authenticat", "api key", "unauthorized")


@runtime_checkable
class Synthesizer(Protocol):
    """Anything that can turn a detection summary into raw analysis text."""

    def synthesize(
        self,
        detection: DetectionResult,
        schema: dict,
        previous_errors: Optional[Sequence[str]] = None,
    ) -> SynthesisOutcome: ...


def build_analysis_prompt(detection: DetectionResult) -> str:
    """Build the first-attempt prompt from detection results."""
    return (
        f"Given this project structure: {json.dumps(detection.to_dict(), indent=2)}\n\n"
        "Analyze the codebase and return structured configuration for AI-assisted "
        "development rules, hooks, and documentation. Consider the directory layout, "
        "dependencies, and config files to determine the architecture type, relevant "
        "file path globs, and which development rules and quality gate steps are appropriate."
    )


def build_retry_prompt(detection: DetectionResult, previous_errors: Sequence[str]) -> str:
    """Build the retry prompt carrying the previous validation errors."""
    return (
        f"Previous response failed validation with errors: {json.dumps(list(previous_errors))}\n"
        f"Project structure: {json.dumps(detection.to_dict())}\n"
        "Return valid JSON only."
    )


def _prompt_for(detection: DetectionResult, previous_errors: Optional[Sequence[str]]) -> str:
    if previous_errors:
        return build_retry_prompt(detection, previous_errors)
    return build_analysis_prompt(detection)


class ClaudeCliSynthesizer:
    """Run ``claude`` in headless mode with a JSON schema constraint."""

    name = "claude-cli"

    def __init__(
        self,
        project_root: Path,
        executable: str = "claude",
        model: str = "haiku",
        timeout: float = 120,
        allowed_tools: Sequence[str] = ("Read", "Glob", "Grep"),
    ):
        self.project_root = Path(project_root)
        self.executable = executable
        self.model = model
        self.timeout = timeout
        self.allowed_tools = _read_only(allowed_tools)

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def build_command(self, prompt: str, schema: dict) -> list[str]:
        cmd = [
            self.executable,
            "--model",
            self.model,
            "-p",
            prompt,
            "--output-format",
            "json",
            "--json-schema",
            schema_json(schema),
            "--max-turns",
            "1",
        ]
        cmd.extend(["--allowedTools", ",".join(self.allowed_tools)])
        return cmd

    def synthesize(
        self,
        detection: DetectionResult,
        schema: dict,
        previous_errors: Optional[Sequence[str]] = None,
    ) -> SynthesisOutcome:
        cmd = self.build_command(_prompt_for(detection, previous_errors), schema)
        logger.debug("Invoking %s (model=%s, timeout=%ss)", self.executable, self.model, self.timeout)

        try:
            proc = subprocess.run(
                cmd,
                cwd=self.project_root,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError:
            return SynthesisOutcome.failed(f"{self.executable} is not installed")
        except subprocess.TimeoutExpired:
            return SynthesisOutcome.failed(f"{self.executable} timed out after {self.timeout:g}s")
        except OSError as e:
            return SynthesisOutcome.failed(f"{self.executable} could not be started: {e}")

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            if any(marker in stderr.lower() for marker in _AUTH_MARKERS):
                return SynthesisOutcome.failed(f"{self.executable} is unauthenticated: {stderr[:200]}")
            return SynthesisOutcome.failed(
                f"{self.executable} exited with code {proc.returncode}: {stderr[:200]}"
            )

        output = (proc.stdout or "").strip()
        if not output:
            return SynthesisOutcome.failed(f"{self.executable} returned no output")
        if _is_error_envelope(output):
            return SynthesisOutcome.failed(f"{self.executable} reported an error result")
        return SynthesisOutcome.success(output)


class ProviderSynthesizer:
    """Synthesize through an AIProvider's structured-output call."""

    def __init__(self, provider: AIProvider, max_tokens: int = 2000):
        self.provider = provider
        self.max_tokens = max_tokens

    @property
    def name(self) -> str:
        return self.provider.name

    def is_available(self) -> bool:
        return self.provider.is_available()

    def synthesize(
        self,
        detection: DetectionResult,
        schema: dict,
        previous_errors: Optional[Sequence[str]] = None,
    ) -> SynthesisOutcome:
        try:
            data = self.provider.structured(
                system=ANALYSIS_SYSTEM_PROMPT,
                user=_prompt_for(detection, previous_errors),
                schema=schema,
                max_tokens=self.max_tokens,
            )
        except CapabilityError as e:
            logger.warning("%s synthesis failed: %s", self.provider.name, e)
            return SynthesisOutcome.failed(str(e))
        return SynthesisOutcome.success(json.dumps(data))


def build_synthesizer(project_root: Path, config=None):
    """Build the configured synthesizer, or None if its capability is unavailable."""
    from setup_ai.core.config_service import get_config_service
    from setup_ai.providers import find_available_provider

    config = config or get_config_service()
    backend = config.get_backend()
    timeout = config.get_timeout()

    if backend == "anthropic":
        provider = find_available_provider(
            "anthropic",
            api_key=config.get_api_key("anthropic"),
            model=config.get_provider_model("anthropic"),
            timeout=timeout,
        )
        if provider is None:
            logger.info("Anthropic API key not configured")
            return None
        return ProviderSynthesizer(provider, max_tokens=config.get_max_tokens("anthropic"))

    synthesizer = ClaudeCliSynthesizer(
        project_root,
        executable=config.get("claude_cli.executable", "claude"),
        model=config.get("claude_cli.model", "haiku"),
        timeout=timeout,
        allowed_tools=config.get("claude_cli.allowed_tools", ["Read", "Glob", "Grep"]),
    )
    if not synthesizer.is_available():
        logger.info("%s not found on PATH", synthesizer.executable)
        return None
    return synthesizer


def _read_only(tools: Sequence[str]) -> tuple[str, ...]:
    if isinstance(tools, str):
        tools = [t.strip() for t in tools.split(",")]
    kept = []
    for tool in tools:
        if tool in READ_ONLY_TOOLS:
            if tool not in kept:
                kept.append(tool)
        elif tool:
            logger.warning("Dropping non read-only tool from allowlist: %s", tool)
    return tuple(kept) or ("Read",)


def _is_error_envelope(output: str) -> bool:
    try:
        data = json.loads(output)
    except (ValueError, RecursionError):
        return False
    return isinstance(data, dict) and data.get("is_error") is True


__all__ = [
    "ANALYSIS_SYSTEM_PROMPT",
    "ClaudeCliSynthesizer",
    "ProviderSynthesizer",
    "READ_ONLY_TOOLS",
    "Synthesizer",
    "build_analysis_prompt",
    "build_retry_prompt",
    "build_synthesizer",
]
