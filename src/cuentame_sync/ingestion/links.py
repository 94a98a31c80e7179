"""
Google Docs link extraction from episode descriptions.

Descriptions are HTML fragments. Links are found with regular expressions
only, either inside ``href`` attributes or as bare URLs in the text.
"""

import re
from typing import List, Optional

HREF_DOCS_PATTERN = re.compile(
    r"""href=["']([^"']*https://docs\.google\.com/document[^"']*)["']""",
    re.IGNORECASE,
)
BARE_DOCS_PATTERN = re.compile(
    r"""https://docs\.google\.com/document/[^\s<>"'()]+""",
    re.IGNORECASE,
)


def extract_google_docs_urls(description: Optional[str]) -> List[str]:
    """
    Extract Google Docs document URLs from a description.

    ``href`` links are collected first, then bare URLs, each URL once in
    order of first appearance.

    Args:
        description: Description text, possibly HTML

    Returns:
        De-duplicated list of document URLs

    Example:
        >>> extract_google_docs_urls(
        ...     '<a href="https://docs.google.com/document/d/ABC">notes</a> '
        ...     'https://docs.google.com/document/d/XYZ'
        ... )
        ['https://docs.google.com/document/d/ABC', 'https://docs.google.com/document/d/XYZ']
    """
    if not description:
        return []

    urls: List[str] = []

    for match in HREF_DOCS_PATTERN.finditer(description):
        url = match.group(1)
        if url and url not in urls:
            urls.append(url)

    for match in BARE_DOCS_PATTERN.finditer(description):
        url = match.group(0)
        if url and url not in urls:
            urls.append(url)

    return urls
