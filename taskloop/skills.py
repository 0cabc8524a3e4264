"""Agent skills: instruction packs the model loads on demand.

Only each skill's name, description and location are injected into the
system prompt. The model reads the full SKILL.md with read_file when it
decides a skill is relevant.

    skills = discover_skills(["/path/to/skills"])
    prompt = skills_prompt(skills)
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
_SKILL_FILES = ("SKILL.md", "skill.md")


class SkillError(ValueError):
    """A SKILL.md file could not be turned into a Skill."""


class Skill(BaseModel):
    """Metadata for one skill."""

    name: str
    description: str = Field(min_length=1)
    path: str = Field(min_length=1)
    license: str | None = None
    compatibility: str | None = None
    allowed_tools: list[str] | None = Field(None, alias="allowed-tools")
    metadata: dict[str, Any] | None = None

    model_config = {"populate_by_name": True}

    @field_validator("name")
    @classmethod
    def _validate_name(cls, name: str) -> str:
        if not 1 <= len(name) <= 64:
            raise ValueError(f"name must be 1-64 characters, got {len(name)}")
        if "--" in name:
            raise ValueError("name must not contain consecutive hyphens")
        if not _NAME_RE.match(name):
            raise ValueError(
                "name must be kebab-case (lowercase alphanumeric and hyphens, "
                "no leading/trailing hyphens)"
            )
        return name


def _parse_frontmatter(content: str) -> dict[str, Any]:
    parts = content.split("---", 2)
    if len(parts) < 3 or parts[0].strip():
        raise SkillError("missing YAML frontmatter delimiters (---)")
    try:
        data = yaml.safe_load(parts[1])
    except yaml.YAMLError as e:
        raise SkillError(f"invalid YAML in frontmatter: {e}") from e
    if not isinstance(data, dict):
        raise SkillError("frontmatter is not a valid YAML map")
    return data


def parse_skill(path: str | Path) -> Skill:
    """Parse a SKILL.md file. The skill path is the file's resolved path."""
    skill_md = Path(path).resolve()
    try:
        content = skill_md.read_text(encoding="utf-8")
    except OSError as e:
        raise SkillError(f"failed to read {skill_md}: {e}") from e

    frontmatter = _parse_frontmatter(content)
    try:
        return Skill.model_validate({**frontmatter, "path": str(skill_md)})
    except ValidationError as e:
        raise SkillError(str(e)) from e


def _find_skill_md(directory: Path) -> Path | None:
    for filename in _SKILL_FILES:
        candidate = directory / filename
        if candidate.is_file():
            return candidate
    return None


def discover_skills(dirs: Iterable[str | Path]) -> list[Skill]:
    """Scan each directory's subdirectories for SKILL.md files.

    Invalid skills and missing directories are logged and skipped.
    Returns skills sorted by name.
    """
    skills: list[Skill] = []
    for root in map(Path, dirs):
        if not root.is_dir():
            logger.warning("Skill discovery: directory not found: %s", root)
            continue
        for subdir in sorted(p for p in root.iterdir() if p.is_dir()):
            skill_md = _find_skill_md(subdir)
            if skill_md is None:
                continue
            try:
                skills.append(parse_skill(skill_md))
            except SkillError as e:
                logger.warning("Skill discovery: skipping %s: %s", subdir, e)
    return sorted(skills, key=lambda s: s.name)


def skills_prompt(skills: Iterable[Skill]) -> str:
    """Render an <available_skills> block, or "" when there are none."""
    entries = [
        f'<skill name="{html.escape(s.name)}" description="{html.escape(s.description)}">\n'
        f"  <location>{html.escape(s.path)}</location>\n"
        f"</skill>"
        for s in skills
    ]
    if not entries:
        return ""
    return (
        "<available_skills>\n"
        + "\n".join(entries)
        + "\n</available_skills>\n"
        + "To use a skill, read its SKILL.md file to get full instructions."
    )
