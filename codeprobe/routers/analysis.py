import os
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException

from codeprobe.config import ROOT_ENV_VAR
from codeprobe.models import BatchRequest, ProjectReport, SourceFileIn
from codeprobe.services import cache, scan, static_analysis
from codeprobe.services.analysis_types import AnalysisRecord, DependencyGraph
from codeprobe.services.ingest import IngestError

router = APIRouter(prefix="/api/analysis", tags=["analysis"])


def _default_root() -> Path:
    configured = os.environ.get(ROOT_ENV_VAR)
    return Path(configured) if configured else Path.cwd()


def _resolve_target(path: Optional[str]) -> Path:
    target = Path(path) if path else _default_root()
    if not target.exists():
        raise HTTPException(status_code=404, detail="Path not found")
    return target


def _scan(target: Path) -> ProjectReport:
    try:
        return scan.scan_path(target)
    except IngestError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=ProjectReport)
async def get_analysis(path: Optional[str] = None):
    """
    Analyze a directory, zip archive or single source file.
    Returns the cached report if one exists, otherwise scans and caches.
    """
    target = _resolve_target(path)

    cached = cache.load_report(target)
    if cached:
        return cached

    report = _scan(target)
    cache.save_report(target, report)
    return report


@router.post("/refresh", response_model=ProjectReport)
async def refresh_analysis(path: Optional[str] = None):
    """
    Force a re-scan, replacing the cached report.
    """
    target = _resolve_target(path)
    report = _scan(target)
    cache.save_report(target, report)
    return report


@router.post("/source", response_model=AnalysisRecord)
async def analyze_source(payload: SourceFileIn):
    """
    Analyze one file's source text. Parse failures come back as an error
    record, not an HTTP error.
    """
    return static_analysis.analyze(payload.source, payload.filename)


@router.post("/batch", response_model=ProjectReport)
async def analyze_batch(payload: BatchRequest):
    records = scan.analyze_sources((f.filename, f.source) for f in payload.files)
    return scan.build_report("(upload)", records)


@router.get("/dependencies", response_model=DependencyGraph)
async def get_dependencies(path: Optional[str] = None):
    """
    Merged caller -> callee graph of the functions and components under a path.
    """
    target = _resolve_target(path)
    report = cache.load_report(target) or _scan(target)
    return report.summary.dependency_graph
