import argparse
import contextlib
import os
import sys
import threading
import time
import webbrowser
from pathlib import Path

import uvicorn

from codeprobe.config import MAX_WORKERS, ROOT_ENV_VAR
from codeprobe.services.scan import scan_path


def _open_browser_later(url: str, delay: float = 1.0) -> None:
    """
    Open the default web browser after a short delay.

    This lets the server start first so the page is reachable.
    """

    def _worker() -> None:
        time.sleep(delay)
        try:
            webbrowser.open(url)
        except webbrowser.Error:
            # No usable browser (e.g. headless env); the URL is printed anyway.
            pass

    thread = threading.Thread(target=_worker, daemon=True)
    thread.start()


def _print_report(target_path: str, workers: int) -> None:
    # Progress lines go to stderr so stdout stays valid JSON.
    with contextlib.redirect_stdout(sys.stderr):
        report = scan_path(Path(target_path), max_workers=workers)
    sys.stdout.write(report.model_dump_json(indent=2))
    sys.stdout.write("\n")


def main(argv: list[str] | None = None) -> None:
    """
    Entry point for the CLI.

    - Analyzes the current working directory, or a given directory, zip
      archive or source file.
    - With --report, prints the JSON report and exits.
    - Otherwise starts the API server and opens the browser.
    """
    parser = argparse.ArgumentParser(
        prog="codeprobe",
        description=(
            "Static analysis of JavaScript/TypeScript projects. "
            "By default, serves the analysis of the current working directory."
        ),
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Directory, .zip archive or source file to analyze (default: current directory).",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host interface to bind the server to (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000).",
    )
    parser.add_argument(
        "--report",
        action="store_true",
        help="Print the JSON report to stdout instead of starting the server.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=MAX_WORKERS,
        help=f"Worker processes used to analyze files (default: {MAX_WORKERS}).",
    )

    args = parser.parse_args(argv)

    target_path = os.path.abspath(args.path)
    if not os.path.exists(target_path):
        raise SystemExit(f"Path does not exist: {target_path}")

    if args.report:
        _print_report(target_path, args.workers)
        return

    # The API serves this target when a request names no path.
    os.environ[ROOT_ENV_VAR] = target_path
    os.chdir(target_path if os.path.isdir(target_path) else os.path.dirname(target_path))
    print(f"📂 Analyzing codebase at: {target_path}")

    url = f"http://{args.host}:{args.port}"
    print(f"🚀 Starting server at {url}")
    print("   Press Ctrl+C to stop.")

    _open_browser_later(url)

    uvicorn.run(
        "codeprobe.main:app",
        host=args.host,
        port=args.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
