import concurrent.futures
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from codeprobe.config import FILE_TIMEOUT, MAX_WORKERS
from codeprobe.models import ProjectReport
from codeprobe.services import static_analysis
from codeprobe.services.aggregate import aggregate
from codeprobe.services.analysis_types import AnalysisRecord
from codeprobe.services.ingest import SourceFile, iter_path_sources

logger = logging.getLogger(__name__)


def _line_count(source_text: str) -> int:
    return len(source_text.split("\n"))


def analyze_single_source(filename: str, source_text: str) -> AnalysisRecord:
    """
    Wrapper to analyze a single file safely.
    Must be top-level for multiprocessing pickling.
    """
    try:
        return static_analysis.get_analyzer().analyze(source_text, filename)
    except Exception as e:
        # The engine handles parse failures itself; anything else is a bug in
        # one file's walk and must not sink the rest of the scan.
        logger.exception("Analysis crashed for %s", filename)
        return AnalysisRecord.failed(filename, _line_count(source_text), str(e))


def _stop_pool(executor: concurrent.futures.ProcessPoolExecutor) -> None:
    # shutdown(wait=False) does not stop a hung worker.
    processes = list((getattr(executor, "_processes", None) or {}).values())
    executor.shutdown(wait=False, cancel_futures=True)
    for process in processes:
        process.terminate()


def _run_in_pool(
    sources: List[SourceFile],
    max_workers: int,
    timeout_seconds: float,
) -> List[AnalysisRecord]:
    """
    Analyze ``sources`` across worker processes.

    The scan gives up once no file has finished for ``timeout_seconds``;
    every file still outstanding at that point gets a timeout error record.
    """
    results: List[Optional[AnalysisRecord]] = [None] * len(sources)
    total_count = len(sources)
    completed_count = 0

    executor = concurrent.futures.ProcessPoolExecutor(max_workers=max_workers)
    future_to_index = {
        executor.submit(analyze_single_source, name, text): i
        for i, (name, text) in enumerate(sources)
    }
    pending = set(future_to_index)
    try:
        while pending:
            done, pending = concurrent.futures.wait(
                pending, timeout=timeout_seconds, return_when=concurrent.futures.FIRST_COMPLETED
            )
            if not done:
                break
            for future in done:
                index = future_to_index[future]
                name, text = sources[index]
                completed_count += 1
                try:
                    record = future.result()
                except Exception as exc:
                    print(f"❌ [{completed_count}/{total_count}] Exception analyzing {name}: {exc}", flush=True)
                    record = AnalysisRecord.failed(name, _line_count(text), f"Worker failed: {exc}")
                else:
                    _report_progress(completed_count, total_count, record)
                results[index] = record
    finally:
        if pending:
            _stop_pool(executor)
        else:
            executor.shutdown()

    for future in sorted(pending, key=future_to_index.get):
        index = future_to_index[future]
        name, text = sources[index]
        print(f"❌ Timeout analyzing {name} (skipped)", flush=True)
        results[index] = AnalysisRecord.failed(name, _line_count(text), "Analysis timed out")

    return results


def _report_progress(completed_count: int, total_count: int, record: AnalysisRecord) -> None:
    if record.ok:
        print(f"✅ [{completed_count}/{total_count}] Analyzed {record.filename}", flush=True)
    else:
        print(f"❌ [{completed_count}/{total_count}] Error analyzing {record.filename}: {record.error}", flush=True)


def analyze_sources(
    sources: Iterable[SourceFile],
    max_workers: int = 1,
    timeout_seconds: float = FILE_TIMEOUT,
) -> List[AnalysisRecord]:
    """
    Analyze every source and return one record per input, in input order.

    Files are independent, so with ``max_workers > 1`` they are spread over a
    process pool; a failure or timeout in one file only turns that file's
    record into an error record.
    """
    sources = list(sources)
    if max_workers <= 1 or len(sources) <= 1:
        records = []
        for i, (name, text) in enumerate(sources, start=1):
            record = analyze_single_source(name, text)
            _report_progress(i, len(sources), record)
            records.append(record)
        return records
    return _run_in_pool(sources, max_workers, timeout_seconds)


def build_report(root: str, records: List[AnalysisRecord]) -> ProjectReport:
    return ProjectReport(root=root, files=records, summary=aggregate(records))


def scan_path(path: Path, max_workers: int = MAX_WORKERS) -> ProjectReport:
    print(f"🔍 Scanning: {path}", flush=True)
    sources = list(iter_path_sources(path))
    print(f"📂 Analyzing {len(sources)} source files...", flush=True)
    records = analyze_sources(sources, max_workers=max_workers)
    return build_report(str(path), records)
