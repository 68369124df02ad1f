# site_mapper/report/sitemap_report.py
"""
Sitemap generation for SiteMapper.

Produces a sitemaps.org ``urlset`` with one ``<url><loc>`` entry per page,
keeping the discovery order.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Union

from lxml import etree

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def render_sitemap(urls: Iterable[str]) -> bytes:
    """
    Build the sitemap document for *urls*.

    :param urls: absolute page URLs, in the order they should appear
    :return: UTF-8 encoded XML with declaration
    """
    root = etree.Element(f"{{{SITEMAP_NS}}}urlset", nsmap={None: SITEMAP_NS})
    for url in urls:
        entry = etree.SubElement(root, f"{{{SITEMAP_NS}}}url")
        loc = etree.SubElement(entry, f"{{{SITEMAP_NS}}}loc")
        loc.text = url
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True)


def write_sitemap(urls: Iterable[str], output_path: Union[Path, str]) -> Path:
    """
    Save the sitemap for *urls* to *output_path*.

    Example:
    ```python
    from site_mapper.report.sitemap_report import write_sitemap
    path = write_sitemap(result.pages, 'out/sitemap.xml')
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(render_sitemap(urls))
    return output
