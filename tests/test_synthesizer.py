"""Tests for the synthesizer backends."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from setup_ai.analysis.models import DetectionResult
from setup_ai.analysis.schema import ANALYSIS_SCHEMA
from setup_ai.analysis.synthesizer import (
    ClaudeCliSynthesizer,
    ProviderSynthesizer,
    Synthesizer,
    build_analysis_prompt,
    build_retry_prompt,
    build_synthesizer,
)
from setup_ai.core.config_service import get_config_service
from setup_ai.errors import CapabilityAuthError, ConfigError


@pytest.fixture
def detection():
    return DetectionResult(has_package_json=True, frameworks=("express",), directories=("api",))


def _completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


# ── Prompts ──────────────────────────────────────────────────────────────


class TestPrompts:
    def test_analysis_prompt_embeds_detection(self, detection):
        prompt = build_analysis_prompt(detection)
        assert '"hasPackageJson": true' in prompt
        assert '"express"' in prompt

    def test_retry_prompt_carries_errors(self, detection):
        prompt = build_retry_prompt(detection, ["apiPaths: 11 items exceeds the maximum of 10"])
        assert prompt.startswith("Previous response failed validation")
        assert "apiPaths: 11 items" in prompt
        assert prompt.endswith("Return valid JSON only.")


# ── claude CLI backend ───────────────────────────────────────────────────


class TestClaudeCliSynthesizer:
    def test_satisfies_protocol(self, tmp_path):
        assert isinstance(ClaudeCliSynthesizer(tmp_path), Synthesizer)

    def test_command_shape(self, tmp_path):
        synth = ClaudeCliSynthesizer(tmp_path)
        cmd = synth.build_command("PROMPT", ANALYSIS_SCHEMA)
        assert cmd[0] == "claude"
        assert cmd[cmd.index("--model") + 1] == "haiku"
        assert cmd[cmd.index("-p") + 1] == "PROMPT"
        assert cmd[cmd.index("--output-format") + 1] == "json"
        assert json.loads(cmd[cmd.index("--json-schema") + 1]) == ANALYSIS_SCHEMA
        assert cmd[cmd.index("--max-turns") + 1] == "1"
        assert cmd[cmd.index("--allowedTools") + 1] == "Read,Glob,Grep"

    def test_mutating_tools_are_dropped(self, tmp_path):
        synth = ClaudeCliSynthesizer(tmp_path, allowed_tools=["Read", "Edit", "Bash"])
        assert synth.allowed_tools == ("Read",)

    def test_empty_allowlist_still_restricted(self, tmp_path):
        synth = ClaudeCliSynthesizer(tmp_path, allowed_tools=["Write"])
        cmd = synth.build_command("p", ANALYSIS_SCHEMA)
        assert cmd[cmd.index("--allowedTools") + 1] == "Read"

    def test_success_returns_stdout(self, tmp_path, detection):
        synth = ClaudeCliSynthesizer(tmp_path, timeout=30)
        with patch("setup_ai.analysis.synthesizer.subprocess.run", return_value=_completed('{"a": 1}\n')) as run:
            outcome = synth.synthesize(detection, ANALYSIS_SCHEMA)
        assert outcome.ok
        assert outcome.text == '{"a": 1}'
        kwargs = run.call_args.kwargs
        assert kwargs["cwd"] == tmp_path
        assert kwargs["timeout"] == 30
        assert kwargs["errors"] == "replace"

    def test_retry_uses_retry_prompt(self, tmp_path, detection):
        synth = ClaudeCliSynthesizer(tmp_path)
        with patch("setup_ai.analysis.synthesizer.subprocess.run", return_value=_completed("{}")) as run:
            synth.synthesize(detection, ANALYSIS_SCHEMA, previous_errors=["bad enum"])
        cmd = run.call_args.args[0]
        assert "bad enum" in cmd[cmd.index("-p") + 1]

    def test_not_installed(self, tmp_path, detection):
        synth = ClaudeCliSynthesizer(tmp_path)
        with patch("setup_ai.analysis.synthesizer.subprocess.run", side_effect=FileNotFoundError()):
            outcome = synth.synthesize(detection, ANALYSIS_SCHEMA)
        assert not outcome.ok
        assert "not installed" in outcome.failure

    def test_timeout(self, tmp_path, detection):
        synth = ClaudeCliSynthesizer(tmp_path, timeout=5)
        with patch(
            "setup_ai.analysis.synthesizer.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="claude", timeout=5),
        ):
            outcome = synth.synthesize(detection, ANALYSIS_SCHEMA)
        assert "timed out after 5s" in outcome.failure

    def test_unauthenticated(self, tmp_path, detection):
        synth = ClaudeCliSynthesizer(tmp_path)
        result = _completed(stderr="Invalid API key. Please run /login", returncode=1)
        with patch("setup_ai.analysis.synthesizer.subprocess.run", return_value=result):
            outcome = synth.synthesize(detection, ANALYSIS_SCHEMA)
        assert "unauthenticated" in outcome.failure

    def test_non_zero_exit(self, tmp_path, detection):
        synth = ClaudeCliSynthesizer(tmp_path)
        with patch("setup_ai.analysis.synthesizer.subprocess.run", return_value=_completed(stderr="network down", returncode=2)):
            outcome = synth.synthesize(detection, ANALYSIS_SCHEMA)
        assert outcome.failure.startswith("claude exited with code 2")

    def test_empty_output(self, tmp_path, detection):
        synth = ClaudeCliSynthesizer(tmp_path)
        with patch("setup_ai.analysis.synthesizer.subprocess.run", return_value=_completed("  ")):
            assert not synth.synthesize(detection, ANALYSIS_SCHEMA).ok

    def test_error_envelope(self, tmp_path, detection):
        synth = ClaudeCliSynthesizer(tmp_path)
        envelope = json.dumps({"type": "result", "is_error": True, "result": "overloaded"})
        with patch("setup_ai.analysis.synthesizer.subprocess.run", return_value=_completed(envelope)):
            assert not synth.synthesize(detection, ANALYSIS_SCHEMA).ok

    def test_malformed_json_output_is_left_to_validation(self, tmp_path, detection):
        synth = ClaudeCliSynthesizer(tmp_path)
        huge = '{"is_error": ' + "1" * 5000 + "}"
        with patch("setup_ai.analysis.synthesizer.subprocess.run", return_value=_completed(huge)):
            outcome = synth.synthesize(detection, ANALYSIS_SCHEMA)
        assert outcome.ok
        assert outcome.text == huge

    def test_is_available_checks_path(self, tmp_path):
        with patch("setup_ai.analysis.synthesizer.shutil.which", return_value=None):
            assert ClaudeCliSynthesizer(tmp_path).is_available() is False
        with patch("setup_ai.analysis.synthesizer.shutil.which", return_value="/usr/bin/claude"):
            assert ClaudeCliSynthesizer(tmp_path).is_available() is True


# ── Provider backend ─────────────────────────────────────────────────────


class TestProviderSynthesizer:
    def test_success_serializes_structured_output(self, detection, valid_payload):
        provider = MagicMock()
        provider.name = "anthropic"
        provider.structured.return_value = valid_payload
        outcome = ProviderSynthesizer(provider, max_tokens=1234).synthesize(detection, ANALYSIS_SCHEMA)
        assert json.loads(outcome.text) == valid_payload
        kwargs = provider.structured.call_args.kwargs
        assert kwargs["schema"] is ANALYSIS_SCHEMA
        assert kwargs["max_tokens"] == 1234

    def test_capability_error_becomes_failure(self, detection):
        provider = MagicMock()
        provider.name = "anthropic"
        provider.structured.side_effect = CapabilityAuthError("key expired", backend="anthropic")
        outcome = ProviderSynthesizer(provider).synthesize(detection, ANALYSIS_SCHEMA)
        assert outcome.failure == "key expired"


# ── Backend selection ────────────────────────────────────────────────────


class TestBuildSynthesizer:
    def test_claude_cli_missing(self, tmp_path):
        with patch("setup_ai.analysis.synthesizer.shutil.which", return_value=None):
            assert build_synthesizer(tmp_path) is None

    def test_claude_cli_configured(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SETUP_AI_MODEL", "sonnet")
        monkeypatch.setenv("SETUP_AI_TIMEOUT", "45")
        with patch("setup_ai.analysis.synthesizer.shutil.which", return_value="/bin/claude"):
            synth = build_synthesizer(tmp_path)
        assert isinstance(synth, ClaudeCliSynthesizer)
        assert synth.model == "sonnet"
        assert synth.timeout == 45
        assert synth.project_root == tmp_path

    def test_anthropic_without_key(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SETUP_AI_BACKEND", "anthropic")
        assert build_synthesizer(tmp_path) is None

    def test_anthropic_uses_injected_config(self, tmp_path):
        config = MagicMock()
        config.get_backend.return_value = "anthropic"
        config.get_timeout.return_value = 30.0
        config.get_api_key.return_value = "sk-injected"
        config.get_provider_model.return_value = "claude-custom"
        config.get_max_tokens.return_value = 512
        synth = build_synthesizer(tmp_path, config=config)
        assert isinstance(synth, ProviderSynthesizer)
        assert synth.provider.api_key == "sk-injected"
        assert synth.provider.model == "claude-custom"
        assert synth.provider.timeout == 30.0
        assert synth.max_tokens == 512

    def test_anthropic_bad_max_tokens(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SETUP_AI_BACKEND", "anthropic")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        (tmp_path / ".setup-ai.toml").write_text('[providers.anthropic]\nmax_tokens = 0\n')
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigError, match="must be positive"):
            build_synthesizer(tmp_path)

    def test_anthropic_with_key(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SETUP_AI_BACKEND", "anthropic")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        synth = build_synthesizer(tmp_path, config=get_config_service())
        assert isinstance(synth, ProviderSynthesizer)
        assert synth.name == "anthropic"
