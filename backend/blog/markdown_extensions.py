# backend/blog/markdown_extensions.py
"""GitHub-flavoured bits Python-Markdown does not ship: ~~strikethrough~~ and bare URL autolinks."""
import xml.etree.ElementTree as etree

from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor, SimpleTagInlineProcessor
from markdown.util import AtomicString

STRIKETHROUGH_RE = r'(~{2})(?!~)(.+?)(?<!~)~{2}'
# http(s)://... or www.... not already part of a word, trailing punctuation left out
BARE_URL_RE = (
    r'(?<![\w/@.:\-"\'=])((?:https?://|www\.)[^\s<>"\'\x02\x03]*[^\s<>"\'\x02\x03.,;:!?)\]}*_~])'
)


class StrikethroughExtension(Extension):
    def extendMarkdown(self, md):
        md.inlinePatterns.register(SimpleTagInlineProcessor(STRIKETHROUGH_RE, 'del'), 'strikethrough', 45)


class BareUrlInlineProcessor(InlineProcessor):
    ANCESTOR_EXCLUDES = ('a',)

    def handleMatch(self, m, data):
        text = m.group(1)
        href = text if '://' in text else f'https://{text}'
        el = etree.Element('a')
        el.set('href', href)
        el.text = AtomicString(text)
        return el, m.start(0), m.end(0)


class AutolinkExtension(Extension):
    def extendMarkdown(self, md):
        # below the built-in <url> autolink (120) so explicit links win
        md.inlinePatterns.register(BareUrlInlineProcessor(BARE_URL_RE, md), 'bare_autolink', 115)
