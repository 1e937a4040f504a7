"""
Markdown Content Provider: reads lessons from a directory of ``.md`` files.

A lesson key is the file path relative to the lessons directory, without
the ``.md`` suffix. YAML frontmatter, when present, supplies the title.
"""

import logging
from pathlib import Path
from typing import Any

import yaml  # type: ignore

from lessontrack.domain.errors import ContentFetchError
from lessontrack.domain.models import Lesson
from lessontrack.domain.ports import ContentProvider

logger = logging.getLogger(__name__)


def parse_frontmatter(md_text: str) -> tuple[dict[str, Any], str]:
    """Split YAML frontmatter from a markdown body.

    Malformed frontmatter is treated as absent and the full text is
    returned as the body.
    """
    md_text = md_text.lstrip("\ufeff")
    lines = md_text.split("\n")

    if not lines or lines[0].strip() != "---":
        return {}, md_text

    end = None
    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == "---":
            end = i
            break

    if end is None:
        return {}, md_text

    raw = "\n".join(lines[1:end])
    body = "\n".join(lines[end + 1 :])

    # Fix tabs (common user error)
    if "\t" in raw:
        raw = raw.replace("\t", "  ")

    try:
        meta = yaml.safe_load(raw) or {}
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring malformed frontmatter: {e}")
        return {}, md_text

    if not isinstance(meta, dict):
        return {}, md_text
    return meta, body


class MarkdownContentProvider(ContentProvider):
    def __init__(self, lessons_dir: Path):
        self.lessons_dir = Path(lessons_dir)

    def _resolve(self, lesson_key: str) -> Path:
        root = self.lessons_dir.resolve()
        path = (root / f"{lesson_key}.md").resolve()
        if root not in path.parents:
            raise ContentFetchError(lesson_key, "path escapes the lessons directory")
        return path

    async def fetch_content(self, lesson_key: str) -> Lesson:
        path = self._resolve(lesson_key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ContentFetchError(lesson_key, "not found") from None
        except OSError as e:
            raise ContentFetchError(lesson_key, str(e), retryable=True) from e

        meta, body = parse_frontmatter(text)
        title = meta.get("title")
        return Lesson(
            key=lesson_key,
            content=body,
            title=str(title) if title is not None else path.stem,
            frontmatter=meta,
        )

    def list_lessons(self) -> list[str]:
        root = self.lessons_dir
        if not root.is_dir():
            return []
        return sorted(p.relative_to(root).with_suffix("").as_posix() for p in root.rglob("*.md"))
