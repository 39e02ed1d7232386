from dataclasses import dataclass, replace
from pathlib import PurePosixPath
from typing import Optional

import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Node, Parser, Tree

from codeprobe.config import NON_JSX_EXTENSIONS

# Load TypeScript and TSX grammars
TYPESCRIPT_LANGUAGE = Language(tstypescript.language_typescript())
TSX_LANGUAGE = Language(tstypescript.language_tsx())


class ParseFailure(Exception):
    """Source text could not be turned into a usable syntax tree."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class ParseOptions:
    dialect: str = "module"
    allow_jsx: bool = True
    allow_type_annotations: bool = True
    error_recovery: bool = True

    @classmethod
    def for_filename(cls, filename: str) -> "ParseOptions":
        options = cls()
        if PurePosixPath(filename.replace("\\", "/")).suffix.lower() in NON_JSX_EXTENSIONS:
            options = replace(options, allow_jsx=False)
        return options


DEFAULT_OPTIONS = ParseOptions()

_parsers: dict = {}


def _get_parser(allow_jsx: bool) -> Parser:
    # Parsers are cached per process; worker processes build their own.
    parser = _parsers.get(allow_jsx)
    if parser is None:
        parser = Parser(TSX_LANGUAGE if allow_jsx else TYPESCRIPT_LANGUAGE)
        _parsers[allow_jsx] = parser
    return parser


def _is_error_node(node: Node) -> bool:
    return node.type == "ERROR" or node.is_missing


def _first_error(node: Node) -> Optional[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        if _is_error_node(current):
            return current
        stack.extend(
            child for child in reversed(current.children)
            if child.has_error or _is_error_node(child)
        )
    return None


def _describe(node: Node) -> str:
    line = node.start_point.row + 1
    column = node.start_point.column
    if node.is_missing:
        return f"Missing {node.type!r} ({line}:{column})"
    return f"Unexpected token ({line}:{column})"


def parse(source_text: str, options: ParseOptions = DEFAULT_OPTIONS) -> Tree:
    """
    Parse JavaScript/TypeScript source into a tree-sitter tree.

    tree-sitter always produces a tree, inserting ERROR and MISSING nodes
    where the input does not fit the grammar. With ``error_recovery`` the
    tree is accepted unless the program root or one of its top-level
    statements is an error; nested recoverable errors are kept. Without it,
    any error node fails the parse.
    """
    parser = _get_parser(options.allow_jsx)
    # Lone surrogates (valid in JSON strings) have no UTF-8 form.
    tree = parser.parse(source_text.encode("utf-8", errors="replace"))
    root = tree.root_node

    if not root.has_error and not _is_error_node(root):
        return tree

    if options.error_recovery:
        fatal = root if _is_error_node(root) else next(
            (child for child in root.children if child.type == "ERROR"), None
        )
        if fatal is None:
            return tree
        raise ParseFailure(_describe(_first_error(fatal) or fatal))

    raise ParseFailure(_describe(_first_error(root) or root))
