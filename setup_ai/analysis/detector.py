"""Deterministic project detection.

Scans a project root for architecture signals using local filesystem
reads only: marker files, top-level source directories, recognized
config files, and dependency names classified into frameworks, ORMs
and test frameworks. No AI calls. Every read or parse failure degrades
to a false/empty field.
"""
from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path

from .models import DetectionResult

logger = logging.getLogger("setup_ai.detector")

SOURCE_DIR = "src"

# Directories ignored when falling back to the project root listing.
# Hidden directories (.git, .venv, ...) are always skipped.
SKIP_DIRS: frozenset[str] = frozenset(
    {
        "node_modules",
        "dist",
        "build",
        "__pycache__",
        "venv",
    }
)

CONFIG_FILES: tuple[str, ...] = (
    "package.json",
    "tsconfig.json",
    ".eslintrc.js",
    ".prettierrc",
    "vite.config.ts",
    "vitest.config.ts",
    "docker-compose.yml",
    "Dockerfile",
    "prisma/schema.prisma",
    "pyproject.toml",
    "requirements.txt",
)

DOCKER_COMPOSE_FILES: tuple[str, ...] = ("docker-compose.yml", "docker-compose.yaml")
GRAPHQL_CONFIG_FILES: tuple[str, ...] = ("graphql.config.ts", "graphql.config.js", ".graphqlrc")

KNOWN_FRAMEWORKS: tuple[str, ...] = (
    "express",
    "fastify",
    "next",
    "nuxt",
    "remix",
    "nestjs",
    "hono",
    "fastapi",
    "flask",
    "django",
)

KNOWN_ORMS: tuple[str, ...] = ("prisma", "drizzle", "typeorm", "sequelize", "mongoose", "sqlalchemy")

KNOWN_TEST_FRAMEWORKS: tuple[str, ...] = ("vitest", "jest", "mocha", "pytest", "unittest")


def detect_project(project_root: Path) -> DetectionResult:
    """Scan ``project_root`` and return its DetectionResult.

    Never raises. A root that is not a readable directory yields an
    all-empty result.
    """
    root = Path(project_root)
    if not _is_dir(root):
        logger.debug("Not a directory, nothing to detect: %s", root)
        return DetectionResult()

    dep_names = _collect_dependency_names(root)

    return DetectionResult(
        has_package_json=_is_file(root / "package.json"),
        has_ts_config=_is_file(root / "tsconfig.json"),
        has_docker_compose=any(_exists(root / name) for name in DOCKER_COMPOSE_FILES),
        has_prisma_schema=_exists(root / "prisma" / "schema.prisma"),
        has_graphql_config=any(_exists(root / name) for name in GRAPHQL_CONFIG_FILES),
        has_pyproject=_is_file(root / "pyproject.toml"),
        directories=tuple(_list_directories(root)),
        config_files=tuple(name for name in CONFIG_FILES if _exists(root / name)),
        frameworks=classify(dep_names, KNOWN_FRAMEWORKS),
        orms=classify(dep_names, KNOWN_ORMS),
        test_frameworks=classify(dep_names, KNOWN_TEST_FRAMEWORKS),
    )


def classify(dep_names: set[str], table: tuple[str, ...]) -> tuple[str, ...]:
    """Return the table entries matched by any dependency name, in table order.

    A name matches an entry when it equals it or contains it, so
    ``@nestjs/core`` counts as ``nestjs``.
    """
    return tuple(
        known for known in table
        if any(name == known or known in name for name in dep_names)
    )


def _exists(path: Path) -> bool:
    try:
        return path.exists()
    except OSError:
        return False


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def _list_directories(root: Path) -> list[str]:
    """List src/ subdirectories, or top-level project directories if there is no src/."""
    src = root / SOURCE_DIR
    if _is_dir(src):
        try:
            return sorted(entry.name for entry in src.iterdir() if _is_dir(entry))
        except OSError as e:
            logger.debug("Cannot list %s: %s", src, e)
            return []

    try:
        entries = list(root.iterdir())
    except OSError as e:
        logger.debug("Cannot list %s: %s", root, e)
        return []
    return sorted(
        entry.name for entry in entries
        if _is_dir(entry)
        and not entry.name.startswith(".")
        and entry.name not in SKIP_DIRS
    )


def _collect_dependency_names(root: Path) -> set[str]:
    """Union dependency names from every manifest present at the root."""
    names: set[str] = set()
    names.update(_package_json_deps(root / "package.json"))
    names.update(_pyproject_deps(root / "pyproject.toml"))
    names.update(_requirements_deps(root / "requirements.txt"))
    return {name.lower() for name in names}


def _package_json_deps(path: Path) -> list[str]:
    """Names from ``dependencies`` and ``devDependencies`` of package.json."""
    if not _is_file(path):
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError, RecursionError) as e:
        logger.warning("Failed to parse %s: %s", path, e)
        return []
    if not isinstance(data, dict):
        return []

    names: list[str] = []
    for section in ("dependencies", "devDependencies"):
        deps = data.get(section)
        if isinstance(deps, dict):
            names.extend(str(name) for name in deps)
    return names


def _pyproject_deps(path: Path) -> list[str]:
    """Names from [project] dependencies, optional dependencies and dependency groups."""
    if not _is_file(path):
        return []
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, ValueError, RecursionError) as e:
        logger.warning("Failed to parse %s: %s", path, e)
        return []

    specs: list = []
    project = data.get("project", {})
    if isinstance(project, dict):
        specs.extend(_as_list(project.get("dependencies")))
        optional = project.get("optional-dependencies", {})
        if isinstance(optional, dict):
            for group in optional.values():
                specs.extend(_as_list(group))
    groups = data.get("dependency-groups", {})
    if isinstance(groups, dict):
        for group in groups.values():
            specs.extend(_as_list(group))

    return [name for name in (_requirement_name(s) for s in specs if isinstance(s, str)) if name]


def _requirements_deps(path: Path) -> list[str]:
    """Names from requirements.txt, skipping comments and pip options."""
    if not _is_file(path):
        return []
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, ValueError) as e:
        logger.warning("Failed to read %s: %s", path, e)
        return []

    names: list[str] = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#") or line.startswith("-"):
            continue
        name = _requirement_name(line)
        if name:
            names.append(name)
    return names


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def _requirement_name(spec: str) -> str:
    """Strip version specifiers, extras and markers from a requirement string."""
    return (
        spec.split(";")[0]
        .split(">")[0]
        .split("<")[0]
        .split("=")[0]
        .split("!")[0]
        .split("~")[0]
        .split("[")[0]
        .strip()
    )
