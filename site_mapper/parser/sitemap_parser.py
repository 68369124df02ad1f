# File: site_mapper/parser/sitemap_parser.py
"""site_mapper.parser.sitemap_parser: parse sitemap.xml back into its URL list."""

from __future__ import annotations

from typing import List, Union

from lxml import etree


def parse_sitemap(xml_content: Union[str, bytes]) -> List[str]:
    """Parse sitemap XML and return the URLs of its <loc> tags, in document order.

    Args:
        xml_content: sitemap document as text or bytes.

    Returns:
        List of URLs found in <loc> tags.

    Example:
    ```python
    from site_mapper.parser.sitemap_parser import parse_sitemap

    with open('sitemap.xml', 'rb') as f:
        urls = parse_sitemap(f.read())
    print(urls)
    ```
    """
    if isinstance(xml_content, str):
        xml_content = xml_content.encode("utf-8")
    parser = etree.XMLParser(ns_clean=True, recover=True, resolve_entities=False)
    root = etree.fromstring(xml_content, parser=parser)
    if root is None:
        return []
    locs = root.findall(".//{*}loc")
    return [loc.text.strip() for loc in locs if loc.text]
