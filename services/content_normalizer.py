"""
Content Normalizer Module

Pure helpers that turn raw publishing API payloads into display-safe values:
entity decoding, markup stripping and summary truncation, featured media
selection, and outbound source link validation. Nothing here touches the
network or mutates its input.
"""

import html
import random
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlsplit

from config import settings
from data.models import Post, PostCard
from utils.exceptions import InvalidUrlError
from utils.helpers import safe_get

_TAG_RE = re.compile(r'<[^>]*>')
_WHITESPACE_RE = re.compile(r'\s+')
# Same tokenization html.unescape uses, including legacy entities without ';'
_ENTITY_RE = re.compile(r'&(#[0-9]+;?|#[xX][0-9a-fA-F]+;?|[^\t\n\f <&#;]{1,32};?)')


def _expose_encoded_brackets(match) -> str:
    decoded = html.unescape(match.group(0))
    if '<' in decoded or '>' in decoded:
        return decoded
    return match.group(0)


def decode_entities(text: str) -> str:
    """Reverse HTML entity encoding (``&amp;`` -> ``&``, ``&#8217;`` -> ``'``)."""
    return html.unescape(text or "")


def strip_markup(text: str) -> str:
    """
    Remove all tags and collapse whitespace runs into single spaces.

    Entity-encoded brackets (``&lt;``, ``&#62;``, ``&gt`` ...) are decoded
    before tags are removed, and angle brackets left over from malformed
    markup are dropped, so neither the result nor decode_entities(result)
    contains ``<`` or ``>``.

    Args:
        text: Raw HTML fragment.

    Returns:
        str: Plain text on one line.
    """
    plain = _ENTITY_RE.sub(_expose_encoded_brackets, text or "")
    plain = _TAG_RE.sub(' ', plain)
    plain = plain.replace('<', ' ').replace('>', ' ')
    return _WHITESPACE_RE.sub(' ', plain).strip()


def truncate_words(text: str, word_limit: int, ellipsis: str = settings.SUMMARY_ELLIPSIS) -> str:
    words = text.split()
    if len(words) <= word_limit:
        return " ".join(words)
    return " ".join(words[:word_limit]) + ellipsis


def summarize(excerpt_html: str, word_limit: Optional[int] = None) -> str:
    """
    Build a plain-text summary from an excerpt.

    Markup is stripped on both sides of entity decoding so encoded tags
    (``&lt;b&gt;``) cannot reappear as markup.

    Args:
        excerpt_html: Raw excerpt HTML.
        word_limit: Maximum words kept, defaults to settings.SUMMARY_WORD_LIMIT.

    Returns:
        str: The summary, with an ellipsis marker when truncated.
    """
    limit = word_limit or settings.SUMMARY_WORD_LIMIT
    text = strip_markup(decode_entities(strip_markup(excerpt_html)))
    return truncate_words(text, limit)


def select_media(raw_post: Dict[str, Any]) -> Optional[str]:
    """
    Return the medium-sized featured image URL, or None.

    The renderer shows a placeholder for None; this never raises on a
    malformed ``_embedded`` block.
    """
    url = safe_get(raw_post, '_embedded', 'wp:featuredmedia', 0, 'media_details', 'sizes', 'medium', 'source_url')
    if isinstance(url, str) and url.strip():
        return url.strip()
    return None


def validate_source_link(url: Optional[str]) -> str:
    """
    Check an outbound source link before navigation is allowed.

    Args:
        url: Candidate link.

    Returns:
        str: The link unchanged.

    Raises:
        InvalidUrlError: If the link is missing or not an absolute http(s) URL.
    """
    if not url or not isinstance(url, str):
        raise InvalidUrlError("Invalid URL: missing link")
    if url != url.strip() or any(ch.isspace() for ch in url):
        raise InvalidUrlError(f"Invalid URL: {url!r}")

    try:
        parts = urlsplit(url)
        # Accessing port validates it is numeric and in range
        parts.port
    except ValueError as e:
        raise InvalidUrlError(f"Invalid URL: {url!r}") from e

    if parts.scheme.lower() not in settings.ALLOWED_LINK_SCHEMES or not parts.hostname:
        raise InvalidUrlError(f"Invalid URL: {url!r}")
    return url


def is_valid_source_link(url: Optional[str]) -> bool:
    try:
        validate_source_link(url)
        return True
    except InvalidUrlError:
        return False


def _rendered(raw_post: Dict[str, Any], key: str) -> str:
    value = raw_post.get(key)
    if isinstance(value, dict):
        value = value.get('rendered')
    return value if isinstance(value, str) else ""


def _parse_published(value: Any) -> datetime:
    if not isinstance(value, str) or not value:
        raise ValueError("missing publication date")
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def normalize_post(raw_post: Dict[str, Any]) -> Post:
    """
    Convert one raw API post into a Post.

    Title, excerpt and body keep their raw HTML. The source link is kept only
    when it validates; the media URL comes from select_media.

    Raises:
        ValueError: If the payload has no usable id or publication date.
    """
    if not isinstance(raw_post, dict):
        raise ValueError("post payload is not an object")
    post_id = raw_post.get('id')
    if isinstance(post_id, bool) or not isinstance(post_id, int):
        raise ValueError(f"post id is not an integer: {post_id!r}")

    meta = raw_post.get('meta')
    if not isinstance(meta, dict):
        meta = {}
    source_tag = meta.get('Source_Tag')
    source_tag = source_tag.strip() if isinstance(source_tag, str) and source_tag.strip() else None
    source_link = meta.get('Source_Link')
    source_url = source_link if is_valid_source_link(source_link) else None

    return Post(
        id=post_id,
        published_at=_parse_published(raw_post.get('date')),
        title=_rendered(raw_post, 'title'),
        excerpt=_rendered(raw_post, 'excerpt'),
        body=_rendered(raw_post, 'content'),
        source_tag=source_tag,
        source_url=source_url,
        media_url=select_media(raw_post),
    )


def shuffle_posts(posts: Sequence[Post], rng: Optional[random.Random] = None) -> List[Post]:
    """Return a new list holding a uniform random permutation of ``posts``."""
    chooser = rng or random
    return chooser.sample(list(posts), len(posts))


def to_card(post: Post, word_limit: Optional[int] = None) -> PostCard:
    """Project a Post into the values a feed card displays."""
    return PostCard(
        post_id=post.id,
        title=strip_markup(decode_entities(post.title)),
        summary=summarize(post.excerpt, word_limit),
        published_on=post.published_at.date(),
        source_tag=decode_entities(post.source_tag) if post.source_tag else None,
        source_url=post.source_url,
        media_url=post.media_url,
    )
