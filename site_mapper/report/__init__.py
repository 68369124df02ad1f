"""site_mapper.report: output renderers (plain text, sitemap XML, JSON) used by the CLI."""

from __future__ import annotations

from typing import Iterable

from site_mapper.report.json_report import render_json, result_to_dict
from site_mapper.report.sitemap_report import render_sitemap, write_sitemap


def render_text(urls: Iterable[str]) -> str:
    """One URL per line, with a trailing newline when the list is non-empty."""
    lines = list(urls)
    return "\n".join(lines) + "\n" if lines else ""


__all__ = ["render_text", "render_sitemap", "write_sitemap", "render_json", "result_to_dict"]
