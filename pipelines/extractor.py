"""HTML content extraction.

Walks a parsed HTML document in document order, treating every element
as a start-tag event and every string as a text event. Produces the
document title, outbound link targets, and per-term occurrence counts.
"""

import logging
from collections import defaultdict
from typing import Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.builder import ParserRejectedMarkup
from bs4.element import PreformattedString

from .errors import ParseError
from .models import ExtractedContent
from .text import clean_text, tokenize

logger = logging.getLogger(__name__)


def _is_text(node) -> bool:
    # Comments, doctypes, CDATA and processing instructions are not text.
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def extract_content(content: Optional[bytes], url: Optional[str] = None) -> ExtractedContent:
    """Parse HTML bytes into title, links and term counts.

    Args:
        content: Raw HTML as fetched
        url: Source URL, used only for error context

    Returns:
        ExtractedContent with ``total_tokens`` equal to the sum of all counts

    Raises:
        ParseError: If content is missing, empty or rejected by the parser
    """
    if content is None:
        raise ParseError("Document content is missing, cannot parse information", url)
    if not content:
        raise ParseError("Document content is empty, cannot parse information", url)

    try:
        soup = BeautifulSoup(content, "html.parser")
    except ParserRejectedMarkup as e:
        raise ParseError(f"HTML parser rejected document: {e}", url) from e

    extracted = ExtractedContent()
    word_count = defaultdict(int)
    consumed = set()

    for node in soup.descendants:
        if isinstance(node, Tag):
            href = node.attrs.get("href")
            if href is not None:
                extracted.links.append(href)

            if node.name == "title":
                first = next(iter(node.children), None)
                if first is not None and _is_text(first):
                    extracted.title = clean_text(str(first))
                    consumed.add(id(first))

        elif _is_text(node):
            if id(node) in consumed:
                continue
            for term in tokenize(str(node)):
                word_count[term] += 1
                extracted.total_tokens += 1

    extracted.word_count = dict(word_count)
    logger.debug(
        f"Extracted {len(extracted.word_count)} terms, {extracted.total_tokens} tokens, "
        f"{len(extracted.links)} links from {url or 'document'}"
    )
    return extracted
