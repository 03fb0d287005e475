"""Tests for the Markdown rendering pipeline."""

import pytest
from bs4 import BeautifulSoup
from django.core.exceptions import ImproperlyConfigured
from django.template import Context, Template

from blog import rendering, store
from blog.rendering import RenderPipeline, RenderStep, render
from core.exceptions import RenderError


def soup_of(document):
    return BeautifulSoup(document.html, "html.parser")


class TestHeadingIds:
    def test_distinct_headings_get_distinct_ids(self):
        document = render("# Intro\n\n## Setup\n\n## Usage\n\n### Going further")

        assert [h.id for h in document.headings] == ["intro", "setup", "usage", "going-further"]

    def test_identical_headings_are_disambiguated(self):
        document = render("## Notes\n\ntext\n\n## Notes\n\nmore\n\n## Notes")

        ids = [h.id for h in document.headings]
        assert ids == ["notes", "notes-1", "notes-2"]
        assert len(set(ids)) == 3

    def test_suffix_collision_with_real_heading(self):
        document = render("## Notes\n\n## Notes 1\n\n## Notes")

        ids = [h.id for h in document.headings]
        assert len(set(ids)) == 3

    def test_ids_are_in_the_html(self):
        document = render("## Setup")

        assert soup_of(document).find("h2")["id"] == "setup"

    def test_heading_without_sluggable_text(self):
        document = render("## !!!\n\n## ???")

        assert [h.id for h in document.headings] == ["section", "section-1"]

    def test_heading_levels_and_text(self):
        document = render("# Title\n\n### Deep *dive*")

        assert [(h.level, h.text) for h in document.headings] == [(1, "Title"), (3, "Deep dive")]

    def test_provided_ids_are_slugified(self):
        document = render('<h2 id="a b">Raw heading</h2>', trusted=True)

        heading = soup_of(document).find("h2")
        assert heading["id"] == "a-b"
        assert heading.find("a")["href"] == "#a-b"

    def test_provided_id_without_sluggable_text_uses_heading_text(self):
        document = render('<h2 id="!!">Usage</h2>', trusted=True)

        assert [h.id for h in document.headings] == ["usage"]

    def test_code_comments_are_not_headings(self):
        document = render("```python\n# not a heading\nx = 1\n```")

        assert document.headings == ()


class TestHeadingAnchors:
    def test_heading_wraps_self_link(self):
        document = render("## Getting started")

        heading = soup_of(document).find("h2")
        anchor = heading.find("a")
        assert anchor["href"] == "#getting-started"
        assert "heading-anchor" in anchor["class"]
        assert anchor.get_text() == "Getting started"

    def test_links_inside_headings_are_unwrapped(self):
        document = render("## See [the docs](https://example.com/docs)")

        heading = soup_of(document).find("h2")
        anchors = heading.find_all("a")
        assert len(anchors) == 1
        assert anchors[0]["href"] == f"#{heading['id']}"


class TestGfm:
    def test_strikethrough(self):
        document = render("This is ~~gone~~ now.")

        assert "<del>gone</del>" in document.html

    def test_tables(self):
        document = render("| name | value |\n| :--- | ---: |\n| a | 1 |")

        table = soup_of(document).find("table")
        assert table is not None
        assert [th.get_text() for th in table.find_all("th")] == ["name", "value"]

    def test_bare_urls_are_autolinked(self):
        document = render("Visit https://example.com/path for more.")

        link = soup_of(document).find("a")
        assert link["href"] == "https://example.com/path"
        assert link.get_text() == "https://example.com/path"

    def test_www_urls_get_a_scheme(self):
        document = render("See www.example.org today")

        assert soup_of(document).find("a")["href"] == "https://www.example.org"

    def test_explicit_links_are_not_linked_twice(self):
        document = render("[site](https://example.com) and <https://example.org>")

        links = soup_of(document).find_all("a")
        assert [a["href"] for a in links] == ["https://example.com", "https://example.org"]

    def test_urls_in_inline_code_stay_text(self):
        document = render("Run `curl https://example.com`")

        assert soup_of(document).find("a") is None


class TestHighlighting:
    def test_fenced_code_is_highlighted(self):
        document = render("```python\ndef answer():\n    return 42\n```")

        block = soup_of(document).find("div", class_="codehilite")
        assert block is not None
        assert block["data-language"] == "python"
        assert block.find("span", class_="k") is not None
        assert "language-python" not in document.html

    def test_unknown_language_falls_back_to_plain_text(self):
        document = render("```nosuchlanguage\nsome text\n```")

        block = soup_of(document).find("div", class_="codehilite")
        assert block is not None
        assert "some text" in block.get_text()

    def test_code_is_escaped(self):
        document = render("```html\n<script>alert(1)</script>\n```")

        assert "<script>" not in document.html
        assert "alert(1)" in soup_of(document).get_text()

    def test_highlighting_keeps_heading_ids(self):
        document = render("## Example\n\n```python\nx = 1\n```\n\n## Example")

        assert [h.id for h in document.headings] == ["example", "example-1"]


class TestSanitizing:
    def test_script_tags_are_removed(self):
        document = render("<script>alert(1)</script>\n\nHello")

        assert "<script" not in document.html
        assert "alert(1)" not in document.html
        assert "Hello" in document.html

    def test_style_contents_are_removed(self):
        document = render("Before <style>body { display: none }</style> after")

        assert "display" not in document.html
        assert "Before" in document.html
        assert "after" in document.html

    def test_event_handlers_are_removed(self):
        document = render('Hi <b onclick="steal()">bold</b>')

        assert "onclick" not in document.html
        assert "<b>bold</b>" in document.html

    def test_javascript_links_lose_their_href(self):
        document = render("[click](javascript:alert(1))")

        assert "javascript:" not in document.html

    def test_trusted_bodies_keep_raw_html(self):
        document = render('<div class="note" data-kind="tip">hi</div>', trusted=True)

        assert 'data-kind="tip"' in document.html

    def test_setting_allows_raw_html(self, settings):
        settings.BLOG_ALLOW_RAW_HTML = True

        document = render('<div data-kind="tip">hi</div>')

        assert 'data-kind="tip"' in document.html


class TestPipeline:
    def test_default_order(self):
        assert rendering.DEFAULT_PIPELINE.names == ["gfm", "sanitize", "heading_ids", "heading_anchors", "highlight"]

    def test_anchors_before_ids_is_refused(self):
        steps = {step.name: step for step in rendering.DEFAULT_PIPELINE.steps}

        with pytest.raises(ImproperlyConfigured):
            RenderPipeline([steps["gfm"], steps["heading_anchors"], steps["heading_ids"]])

    def test_highlight_before_anchors_is_refused(self):
        steps = {step.name: step for step in rendering.DEFAULT_PIPELINE.steps}

        with pytest.raises(ImproperlyConfigured):
            RenderPipeline([steps["gfm"], steps["heading_ids"], steps["highlight"], steps["heading_anchors"]])

    def test_mismatched_input_is_refused(self):
        steps = {step.name: step for step in rendering.DEFAULT_PIPELINE.steps}

        with pytest.raises(ImproperlyConfigured):
            RenderPipeline([steps["heading_ids"]])

    def test_step_failure_becomes_render_error(self):
        def explode(value, ctx):
            raise ValueError("boom")

        pipeline = RenderPipeline([RenderStep("explode", explode, consumes="markdown", produces="html")])

        with pytest.raises(RenderError) as excinfo:
            render("text", pipeline=pipeline)
        assert "explode" in excinfo.value.message
        assert isinstance(excinfo.value.__cause__, ValueError)


class TestRenderedDocument:
    def test_embeds_without_escaping(self):
        document = render("**bold**")

        output = Template("{{ document }}").render(Context({"document": document}))

        assert output == document.html
        assert str(document) == document.html
        assert "<strong>bold</strong>" in output

    def test_reading_time(self):
        document = render(" ".join(["word"] * 450))

        assert document.word_count == 450
        assert document.reading_time == 3

    def test_empty_body(self):
        document = render("")

        assert document.html == ""
        assert document.headings == ()
        assert document.reading_time == 1


@pytest.mark.django_db
class TestRenderPost:
    def test_new_version_renders_fresh(self, make_post):
        post = make_post(body="## First")

        assert rendering.render_post(post).headings[0].id == "first"

        updated = store.update_post(post.slug, {"body": "## Second"})

        assert rendering.render_post(updated).headings[0].id == "second"

    def test_cached_per_version(self, make_post, monkeypatch):
        post = make_post(body="## Cached")
        calls = []
        original = rendering.render

        def counting(*args, **kwargs):
            calls.append(args)
            return original(*args, **kwargs)

        monkeypatch.setattr(rendering, "render", counting)

        rendering.render_post(post)
        rendering.render_post(post)

        assert len(calls) == 1
