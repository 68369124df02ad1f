# site_mapper/report/json_report.py

"""
JSON report for SiteMapper.

Serializes a CrawlResult, including per-page errors, to a file.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from site_mapper.crawler.models import CrawlResult


def result_to_dict(result: CrawlResult) -> Dict[str, Any]:
    """Plain-dict view of *result* suitable for ``json.dumps``."""
    return {
        "seed": result.seed,
        "origin": str(result.origin) if result.origin else None,
        "cancelled": result.cancelled,
        "fatal": str(result.fatal) if result.fatal else None,
        "pages": list(result.pages),
        "pending": list(result.pending),
        "errors": [
            {
                "url": url,
                "type": type(err).__name__,
                "message": err.reason,
                "status": getattr(err, "status", None),
            }
            for url, err in result.errors.items()
        ],
    }


def render_json(
    result: CrawlResult, output_path: Optional[Union[Path, str]] = None, *, pretty: bool = True
) -> Union[Path, str]:
    """
    Serialize *result* as JSON.

    :param result: finished crawl
    :param output_path: file to write; when None the JSON text is returned instead
    :return: Path of the saved file, or the JSON text
    """
    text = json.dumps(result_to_dict(result), ensure_ascii=False, indent=2 if pretty else None)
    if output_path is None:
        return text

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as f:
        f.write(text)
        f.write("\n")
    return output
