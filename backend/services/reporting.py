# backend/services/reporting.py
"""
Run summary and attribution reports written after each discovery pass.
Consumed by external monitoring and the site's credits page.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from models.automation import DiscoveryRunLog
from utils.files import write_json_atomic

logger = logging.getLogger(__name__)

ATTRIBUTION_REPORT_NAME = "attribution-report.json"


def write_run_report(log: DiscoveryRunLog, path: Union[str, Path]) -> Optional[Path]:
    """
    Write automation-report.json for a finished pass.
    Returns the path, or None when the file could not be written.
    """
    try:
        written = write_json_atomic(path, log.to_report())
    except OSError as e:
        logger.error(f"Failed to write run report {path}: {e}")
        return None

    logger.info(f"Run report saved to {written}")
    return written


def build_attribution_report(attributions_dir: Union[str, Path]) -> Dict[str, Any]:
    """Group every attributions/<slug>.json by source name."""
    attributions_dir = Path(attributions_dir)
    sources: Dict[str, List[Dict[str, Any]]] = {}

    if attributions_dir.is_dir():
        for file in sorted(attributions_dir.glob("*.json")):
            if file.name == ATTRIBUTION_REPORT_NAME:
                continue
            try:
                data = json.loads(file.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable attribution {file.name}: {e}")
                continue

            source = data.get("sourceName") or "unknown"
            sources.setdefault(source, []).append({
                "camera": file.stem,
                "attribution": data.get("attribution"),
                "license": data.get("license"),
                "sourceUrl": data.get("sourceUrl"),
                "downloadedAt": data.get("downloadedAt"),
            })

    return {
        "generated": datetime.utcnow().isoformat() + "Z",
        "totalImages": sum(len(entries) for entries in sources.values()),
        "sources": sources,
    }


def write_attribution_report(attributions_dir: Union[str, Path]) -> Optional[Path]:
    """Write attributions/attribution-report.json. Returns None on failure."""
    report = build_attribution_report(attributions_dir)
    path = Path(attributions_dir) / ATTRIBUTION_REPORT_NAME
    try:
        write_json_atomic(path, report)
    except OSError as e:
        logger.error(f"Failed to write attribution report: {e}")
        return None

    logger.info(f"Attribution report: {report['totalImages']} images from {len(report['sources'])} sources")
    return path
