"""Shared fixtures for setup-ai tests."""
import json
import logging
from typing import Optional, Sequence

import pytest

from setup_ai import ui
from setup_ai.analysis.models import DetectionResult, SynthesisOutcome
from setup_ai.core.config_service import ENV_VAR_MAP, PROVIDER_KEY_ENV, reset_config_service


@pytest.fixture(autouse=True)
def isolated_env(tmp_path_factory, monkeypatch):
    """Keep every test away from real config, credentials and env vars.

    HOME points at a temp dir (no global config), the cwd is an empty
    temp dir (no project config or .env), and all setup-ai env vars
    are cleared.
    """
    home = tmp_path_factory.mktemp("home")
    workdir = tmp_path_factory.mktemp("cwd")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(workdir)
    for env_var in list(ENV_VAR_MAP) + [v for v in PROVIDER_KEY_ENV.values() if v] + ["SETUP_AI_DEBUG"]:
        monkeypatch.delenv(env_var, raising=False)

    reset_config_service()
    yield home
    reset_config_service()
    ui.set_plain_mode(False)

    # The CLI callback detaches setup_ai logs from the root logger.
    logger = logging.getLogger("setup_ai")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def project_dir(tmp_path):
    """A small 3-tier-looking project: express + prisma + vitest, src/ layout."""
    project = tmp_path / "shop"
    project.mkdir()
    (project / "package.json").write_text(json.dumps({
        "dependencies": {"express": "^4.19.0", "@prisma/client": "^5.0.0"},
        "devDependencies": {"prisma": "^5.0.0", "vitest": "^1.6.0"},
    }))
    (project / "tsconfig.json").write_text("{}")
    (project / "prisma").mkdir()
    (project / "prisma" / "schema.prisma").write_text("datasource db {}\n")
    for sub in ("api", "db", "web"):
        (project / "src" / sub).mkdir(parents=True)
    return project


@pytest.fixture
def valid_payload():
    return {
        "detectedArchitecture": "3-tier",
        "apiPaths": ["src/api/**"],
        "dbPaths": ["prisma/**"],
        "testPaths": ["test/**"],
        "architectureGuidance": "Express API over Prisma; keep handlers thin.",
        "recommendedRules": ["general", "api", "database"],
        "hookSteps": ["format", "lint", "typecheck"],
    }


class FakeSynthesizer:
    """Synthesizer returning scripted outcomes and recording each call.

    Script items may be SynthesisOutcome, dict (sent as JSON), str (raw
    text) or an Exception instance (raised). The last item repeats.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls: list[tuple[DetectionResult, dict, Optional[Sequence[str]]]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def synthesize(self, detection, schema, previous_errors=None):
        self.calls.append((detection, schema, previous_errors))
        item = self.script[min(len(self.calls), len(self.script)) - 1]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, SynthesisOutcome):
            return item
        if isinstance(item, dict):
            return SynthesisOutcome.success(json.dumps(item))
        return SynthesisOutcome.success(item)


@pytest.fixture
def fake_synthesizer():
    """Factory for FakeSynthesizer instances."""
    return FakeSynthesizer
