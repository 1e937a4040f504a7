import pytest

from lessontrack.domain.errors import ContentFetchError
from lessontrack.infrastructure.adapters.markdown_content import (
    MarkdownContentProvider,
    parse_frontmatter,
)


@pytest.fixture
def lessons_dir(tmp_path):
    root = tmp_path / "lessons"
    (root / "basics").mkdir(parents=True)
    (root / "basics" / "intro.md").write_text(
        "---\ntitle: Getting Started\nlevel: 1\n---\nHello there reader\n", encoding="utf-8"
    )
    (root / "plain.md").write_text("Just a body", encoding="utf-8")
    (root / "notes.txt").write_text("ignored", encoding="utf-8")
    return root


def test_parse_frontmatter_basic():
    meta, body = parse_frontmatter("---\ntitle: A\n---\nbody")
    assert meta == {"title": "A"}
    assert body == "body"


def test_parse_frontmatter_strips_bom_and_tabs():
    meta, body = parse_frontmatter("\ufeff---\ntags:\n\t- x\n---\nbody")
    assert meta == {"tags": ["x"]}
    assert body == "body"


@pytest.mark.parametrize(
    "text",
    [
        "no frontmatter here",
        "---\ntitle: unterminated\nbody",
        "---\n[not: a mapping\n---\nbody",
        "---\n- just\n- a list\n---\nbody",
    ],
)
def test_parse_frontmatter_malformed_is_absent(text):
    meta, body = parse_frontmatter(text)
    assert meta == {}
    assert body == text


@pytest.mark.asyncio
async def test_fetch_content_with_frontmatter(lessons_dir):
    lesson = await MarkdownContentProvider(lessons_dir).fetch_content("basics/intro")

    assert lesson.key == "basics/intro"
    assert lesson.title == "Getting Started"
    assert lesson.frontmatter["level"] == 1
    assert lesson.content.strip() == "Hello there reader"
    assert lesson.word_count == 3


@pytest.mark.asyncio
async def test_title_falls_back_to_file_name(lessons_dir):
    lesson = await MarkdownContentProvider(lessons_dir).fetch_content("plain")
    assert lesson.title == "plain"


@pytest.mark.asyncio
async def test_missing_lesson_is_not_retryable(lessons_dir):
    with pytest.raises(ContentFetchError) as exc:
        await MarkdownContentProvider(lessons_dir).fetch_content("nope")
    assert not exc.value.retryable


@pytest.mark.asyncio
async def test_keys_cannot_escape_lessons_dir(lessons_dir):
    (lessons_dir.parent / "secret.md").write_text("secret")

    with pytest.raises(ContentFetchError):
        await MarkdownContentProvider(lessons_dir).fetch_content("../secret")


def test_list_lessons(lessons_dir, tmp_path):
    assert MarkdownContentProvider(lessons_dir).list_lessons() == ["basics/intro", "plain"]
    assert MarkdownContentProvider(tmp_path / "missing").list_lessons() == []
