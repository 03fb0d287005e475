# backend/blog/rendering.py
"""
Markdown rendering pipeline.

A post body goes through an ordered list of named steps. Each step declares
what it consumes and produces ("markdown", "html" or "tree", a BeautifulSoup
document) and which steps must already have run. ``RenderPipeline`` checks
both when it is built, so a misordered pipeline fails at import time instead
of rendering subtly wrong HTML.

    gfm -> sanitize -> heading_ids -> heading_anchors -> highlight

Raw HTML inside a body is cleaned by ``sanitize`` unless the body is trusted
(``render(..., trusted=True)`` or the BLOG_ALLOW_RAW_HTML setting).
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Tuple

import bleach
import markdown
from bs4 import BeautifulSoup
from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured
from django.utils.safestring import mark_safe
from django.utils.text import slugify
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.lexers.special import TextLexer
from pygments.util import ClassNotFound

from core.exceptions import RenderError
from .markdown_extensions import AutolinkExtension, StrikethroughExtension
from .utils import count_words, reading_time_minutes

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
ANCHOR_CLASS = "heading-anchor"
CODE_CSS_CLASS = "codehilite"

ALLOWED_TAGS = frozenset({
    "a", "abbr", "b", "blockquote", "br", "code", "del", "details", "div", "em",
    "figcaption", "figure", "h1", "h2", "h3", "h4", "h5", "h6", "hr", "i", "img",
    "kbd", "li", "ol", "p", "pre", "s", "span", "strong", "sub", "summary", "sup",
    "table", "tbody", "td", "th", "thead", "tr", "ul",
})
ALLOWED_ATTRIBUTES = {
    "a": ["href", "title", "rel"],
    "abbr": ["title"],
    "img": ["src", "alt", "title", "width", "height", "loading"],
    "code": ["class"],
    "span": ["class"],
    "div": ["class"],
    "ol": ["start"],
    "th": ["align"],
    "td": ["align"],
    **{tag: ["id"] for tag in HEADING_TAGS},
}
ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto"})
DROPPED_TAGS = ["script", "style", "noscript", "template"]


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    id: str


@dataclass(frozen=True)
class RenderedDocument:
    html: str
    headings: Tuple[Heading, ...] = ()
    word_count: int = 0
    reading_time: int = 1

    def __html__(self):
        # already sanitized; lets templates embed it without |safe
        return mark_safe(self.html)

    def __str__(self):
        return mark_safe(self.html)


@dataclass
class RenderContext:
    trusted: bool = False
    headings: List[Heading] = field(default_factory=list)


@dataclass(frozen=True)
class RenderStep:
    name: str
    transform: Callable
    consumes: str
    produces: str
    requires: Tuple[str, ...] = ()


class RenderPipeline:
    def __init__(self, steps):
        self.steps = tuple(steps)
        seen = []
        current = "markdown"
        for step in self.steps:
            if step.name in seen:
                raise ImproperlyConfigured(f"Render step '{step.name}' is listed twice")
            missing = [name for name in step.requires if name not in seen]
            if missing:
                raise ImproperlyConfigured(
                    f"Render step '{step.name}' must run after: {', '.join(missing)}"
                )
            if step.consumes != current:
                raise ImproperlyConfigured(
                    f"Render step '{step.name}' expects {step.consumes} but receives {current}"
                )
            seen.append(step.name)
            current = step.produces

    @property
    def names(self):
        return [step.name for step in self.steps]

    def run(self, raw, ctx):
        value = raw
        for step in self.steps:
            try:
                value = step.transform(value, ctx)
            except RenderError:
                raise
            except Exception as exc:
                raise RenderError(f"Render step '{step.name}' failed") from exc
        return value if isinstance(value, str) else str(value)


# ---------------------------
# Steps
# ---------------------------
def convert_gfm(text, ctx):
    md = markdown.Markdown(
        extensions=["tables", "fenced_code", "sane_lists", StrikethroughExtension(), AutolinkExtension()],
        extension_configs={"tables": {"use_align_attribute": True}},
        output_format="html",
    )
    return md.convert(text)


def sanitize_html(html, ctx):
    if ctx.trusted:
        return html
    soup = BeautifulSoup(html, "html.parser")
    # bleach strips the tags but keeps their text
    for element in soup.find_all(DROPPED_TAGS):
        element.decompose()
    return bleach.clean(
        str(soup),
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def _unique_id(base, used):
    candidate = base
    counter = 0
    while candidate in used:
        counter += 1
        candidate = f"{base}-{counter}"
    used.add(candidate)
    return candidate


def assign_heading_ids(html, ctx):
    soup = BeautifulSoup(html, "html.parser")
    used = set()
    for heading in soup.find_all(HEADING_TAGS):
        text = heading.get_text(" ", strip=True)
        base = (
            slugify(heading.get("id", ""), allow_unicode=True)
            or slugify(text, allow_unicode=True)
            or "section"
        )
        heading["id"] = _unique_id(base, used)
        ctx.headings.append(Heading(level=int(heading.name[1]), text=text, id=heading["id"]))
    return soup


def wrap_heading_anchors(soup, ctx):
    for heading in soup.find_all(HEADING_TAGS):
        # a link inside a link is invalid HTML
        for nested in heading.find_all("a"):
            nested.unwrap()
        anchor = soup.new_tag("a", attrs={"href": f"#{heading['id']}", "class": ANCHOR_CLASS})
        for child in list(heading.contents):
            anchor.append(child)
        heading.append(anchor)
    return soup


def _lexer_for(language):
    if not language:
        return TextLexer()
    try:
        return get_lexer_by_name(language)
    except ClassNotFound:
        return TextLexer()


def _code_language(code):
    for css_class in code.get("class") or []:
        if css_class.startswith("language-"):
            return css_class[len("language-"):]
    return ""


def highlight_code(soup, ctx):
    formatter = HtmlFormatter(cssclass=CODE_CSS_CLASS)
    for code in soup.select("pre > code"):
        pre = code.parent
        language = _code_language(code)
        fragment = BeautifulSoup(highlight(code.get_text(), _lexer_for(language), formatter), "html.parser")
        block = fragment.find("div").extract()
        if language:
            block["data-language"] = language
        pre.replace_with(block)
    return soup


DEFAULT_PIPELINE = RenderPipeline([
    RenderStep("gfm", convert_gfm, consumes="markdown", produces="html"),
    RenderStep("sanitize", sanitize_html, consumes="html", produces="html", requires=("gfm",)),
    RenderStep("heading_ids", assign_heading_ids, consumes="html", produces="tree", requires=("gfm",)),
    RenderStep("heading_anchors", wrap_heading_anchors, consumes="tree", produces="tree",
               requires=("heading_ids",)),
    RenderStep("highlight", highlight_code, consumes="tree", produces="tree",
               requires=("heading_ids", "heading_anchors")),
])


def render(raw_body, trusted=None, pipeline=None) -> RenderedDocument:
    if trusted is None:
        trusted = settings.BLOG_ALLOW_RAW_HTML
    raw_body = raw_body or ""
    ctx = RenderContext(trusted=bool(trusted))
    html = (pipeline or DEFAULT_PIPELINE).run(raw_body, ctx)
    words = count_words(raw_body)
    return RenderedDocument(
        html=html,
        headings=tuple(ctx.headings),
        word_count=words,
        reading_time=reading_time_minutes(words),
    )


def render_post(post) -> RenderedDocument:
    """Renders ``post.body`` (a post or project), cached per record version."""
    trusted = settings.BLOG_ALLOW_RAW_HTML
    stamp = post.updated_at.timestamp() if post.updated_at else 0
    key = f"blog:rendered:{post._meta.label_lower}:{post.pk}:{post.version}:{stamp}:{int(trusted)}"
    document = cache.get(key)
    if document is None:
        document = render(post.body, trusted=trusted)
        cache.set(key, document, settings.BLOG_RENDER_CACHE_SECONDS)
        logger.debug("Rendered post %s (%d headings)", post.slug, len(document.headings))
    return document


def highlight_stylesheet(style="default"):
    return HtmlFormatter(cssclass=CODE_CSS_CLASS, style=style).get_style_defs(f".{CODE_CSS_CLASS}")
