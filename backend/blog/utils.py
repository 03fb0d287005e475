# backend/blog/utils.py
import math
import re

from django.conf import settings
from django.utils.html import strip_tags
from django.utils.text import slugify as dj_slugify

CYRILLIC_TO_LATIN = {
    'а':'a','б':'b','в':'v','г':'g','д':'d','е':'e','ё':'yo','ж':'zh','з':'z','и':'i',
    'й':'y','к':'k','л':'l','м':'m','н':'n','о':'o','п':'p','р':'r','с':'s','т':'t',
    'у':'u','ф':'f','х':'kh','ц':'ts','ч':'ch','ш':'sh','щ':'shch','ъ':'','ы':'y','ь':'',
    'э':'e','ю':'yu','я':'ya'
}

SLUG_RE = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
WORD_RE = re.compile(r"\w[\w'’-]*", re.UNICODE)
# fenced code, inline code, images and link targets do not count as prose
MARKDOWN_NOISE_RE = re.compile(r"```.*?```|`[^`]*`|!\[[^\]]*\]\([^)]*\)|\]\([^)]*\)", re.DOTALL)


def translit_to_latin(text: str) -> str:
    result = []
    for ch in text:
        low = ch.lower()
        if low in CYRILLIC_TO_LATIN:
            mapped = CYRILLIC_TO_LATIN[low]
            # preserve case if capital
            if ch.isupper():
                mapped = mapped.capitalize()
            result.append(mapped)
        else:
            result.append(ch)
    return ''.join(result)


def translit_slugify(value: str, max_length=200) -> str:
    if not value:
        return ''
    t = translit_to_latin(value)
    slug = dj_slugify(t)
    slug = re.sub(r'-{2,}', '-', slug).strip('-')
    return slug[:max_length].strip('-')


def is_valid_slug(value) -> bool:
    return bool(value) and bool(SLUG_RE.match(value))


def unique_slug(model, base, instance_pk=None, max_length=200, field="slug"):
    """
    Returns ``base`` or ``base-1``, ``base-2``... whichever is free in ``model``.
    """
    base = (base or "item")[:max_length - 6].strip('-') or "item"
    slug = base
    counter = 1
    qs = model._default_manager.all()
    if instance_pk is not None:
        qs = qs.exclude(pk=instance_pk)
    while qs.filter(**{field: slug}).exists():
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def count_words(markdown_text: str) -> int:
    if not markdown_text:
        return 0
    text = strip_tags(MARKDOWN_NOISE_RE.sub(" ", markdown_text))
    return len(WORD_RE.findall(text))


def reading_time_minutes(word_count: int) -> int:
    wpm = getattr(settings, "BLOG_WORDS_PER_MINUTE", 200)
    return max(1, math.ceil(word_count / wpm))
