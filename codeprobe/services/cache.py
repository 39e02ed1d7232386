import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from codeprobe.config import REPORT_CACHE_FILE_NAME
from codeprobe.models import ProjectReport

logger = logging.getLogger(__name__)


def get_cache_path(target: Path) -> Path:
    # Reports for a zip archive or single file sit next to it.
    if target.is_dir():
        return target / REPORT_CACHE_FILE_NAME
    return target.parent / f"{target.name}.{REPORT_CACHE_FILE_NAME}"


def save_report(target: Path, report: ProjectReport) -> None:
    cache_path = get_cache_path(target)
    with open(cache_path, "w", encoding="utf-8") as f:
        f.write(report.model_dump_json(indent=2))
    print(f"✅ Saved report to {cache_path}")


def load_report(target: Path) -> Optional[ProjectReport]:
    cache_path = get_cache_path(target)
    if not cache_path.exists():
        return None

    try:
        return ProjectReport.model_validate_json(cache_path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        logger.warning("Ignoring unreadable report cache %s: %s", cache_path, e)
        return None
