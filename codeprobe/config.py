import os
from typing import Set

IGNORE_DIRS: Set[str] = {
    '.git',
    'node_modules',
    'bower_components',
    'jspm_packages',
    'vendor',
    '__pycache__',
    'dist',
    'build',
    '.next',
    '.nuxt',
    'coverage',
    '.idea',
    '.vscode',
    'out',
    '__MACOSX',
}

IGNORE_FILES: Set[str] = {
    'package-lock.json', 'yarn.lock', 'pnpm-lock.yaml',
}

# Minified bundles are build output, not source.
IGNORE_SUFFIXES: Set[str] = {
    '.min.js', '.bundle.js', '.d.ts',
}

ANALYZABLE_EXTENSIONS: Set[str] = {
    '.js', '.jsx', '.ts', '.tsx', '.mjs', '.cjs', '.mts', '.cts',
}

# Extensions whose grammar has no JSX (angle brackets are type assertions).
NON_JSX_EXTENSIONS: Set[str] = {'.ts', '.mts', '.cts'}

REPORT_CACHE_FILE_NAME = "codeprobe_report.json"

MAX_WORKERS = int(os.environ.get("CODEPROBE_MAX_WORKERS", "4"))

# Seconds a worker pool may go without finishing a file before the files still
# outstanding are reported as timed out.
FILE_TIMEOUT = float(os.environ.get("CODEPROBE_FILE_TIMEOUT", "5"))

# Set by the CLI to the directory, archive or file being served.
ROOT_ENV_VAR = "CODEPROBE_ROOT"
