import logging
import re
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

from tree_sitter import Node, Tree

from codeprobe.services.analysis_types import (
    COMPONENT,
    HANDLER,
    HELPER,
    AnalysisRecord,
    ComplexityCounters,
    DependencyEdge,
    DependencyGraph,
    EffectUnit,
    FunctionNode,
    ImportEdge,
    Issue,
    Metrics,
    StateModel,
    StateTransition,
    StateUnit,
)
from codeprobe.services.parser import ParseFailure, ParseOptions, parse
from codeprobe.services.scope import ScopeTracker
from codeprobe.services.scoring import compute_maintainability, compute_quality_score

logger = logging.getLogger(__name__)

ParseFunction = Callable[[str, ParseOptions], Tree]

COMPONENT_NAME = re.compile(r"^[A-Z]")
HANDLER_NAME = re.compile(r"^(handle|on)[A-Z]")
SETTER_NAME = re.compile(r"^set[A-Z].")

BUILTIN_CALLEES = frozenset({
    "alert", "console", "setTimeout", "setInterval", "clearTimeout",
    "clearInterval", "parseInt", "parseFloat", "isNaN", "isFinite",
    "encodeURI", "decodeURI", "encodeURIComponent", "decodeURIComponent",
    "JSON", "Math", "Date", "Array", "Object", "String", "Number", "Boolean",
    "Symbol", "Map", "Set", "WeakMap", "WeakSet", "Promise", "fetch", "require",
})

EFFECT_HOOKS = frozenset({"useEffect", "useCallback", "useMemo"})

FUNCTION_DECLARATION_TYPES = {
    'function_declaration',
    'generator_function_declaration',
}

# 'function' is the pre-0.23 grammar name of 'function_expression'.
FUNCTION_EXPRESSION_TYPES = {
    'arrow_function',
    'function_expression',
    'function',
    'generator_function',
}

BRANCH_TYPES = {
    'if_statement',
    'ternary_expression',
    'switch_case',
    'switch_default',
    'catch_clause',
}

# for-in and for-of share the 'for_in_statement' node.
LOOP_TYPES = {
    'for_statement',
    'for_in_statement',
    'while_statement',
    'do_statement',
}

JSX_ELEMENT_TYPES = {'jsx_opening_element', 'jsx_self_closing_element'}

LOGICAL_OPERATORS = {'&&', '||'}


def classify_declaration(name: str) -> str:
    """Component wins over handler: ``OnFoo`` is a component."""
    if COMPONENT_NAME.match(name):
        return COMPONENT
    if HANDLER_NAME.match(name):
        return HANDLER
    return HELPER


def _text(node: Node) -> str:
    return node.text.decode('utf-8', errors='replace')


def _unquote(node: Node) -> str:
    return _text(node).strip("'\"`")


def _arguments(call: Node) -> List[Node]:
    args = call.child_by_field_name('arguments')
    if args is None:
        return []
    return [a for a in args.named_children if a.type != 'comment']


@dataclass
class TraversalContext:
    """Accumulators for one file, threaded through the walk."""
    scope: ScopeTracker = field(default_factory=ScopeTracker)
    functions: List[str] = field(default_factory=list)
    variables: List[str] = field(default_factory=list)
    event_handlers: List[str] = field(default_factory=list)
    components: List[str] = field(default_factory=list)
    hooks: List[str] = field(default_factory=list)
    imports: List[ImportEdge] = field(default_factory=list)
    exports: List[str] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    max_depth: int = 0
    branch_count: int = 0
    loop_count: int = 0
    cyclomatic_complexity: int = 1
    coupling_between_objects: int = 0
    weighted_methods_per_class: int = 0
    declared_kinds: Dict[str, str] = field(default_factory=dict)
    render_roots: List[str] = field(default_factory=list)
    states: List[StateUnit] = field(default_factory=list)
    transitions: List[StateTransition] = field(default_factory=list)
    effects: List[EffectUnit] = field(default_factory=list)
    # setter name -> state name
    setters: Dict[str, str] = field(default_factory=dict)
    # (caller, callee) -> call count, in first-seen order
    references: Dict[Tuple[str, str], int] = field(default_factory=dict)


class StaticAnalyzer:
    def __init__(self, parse_function: Optional[ParseFunction] = None):
        self._parse = parse_function or parse

    def analyze(self, source_text: str, filename: str) -> AnalysisRecord:
        started = time.perf_counter()
        line_count = len(source_text.split("\n"))

        try:
            tree = self._parse(source_text, ParseOptions.for_filename(filename))
        except ParseFailure as e:
            logger.warning("Could not parse %s: %s", filename, e.message)
            return AnalysisRecord.failed(filename, line_count, e.message, _elapsed(started))

        ctx = TraversalContext()
        self._walk(tree.root_node, ctx)

        record = self._build_record(ctx, filename, line_count)
        return replace(
            record,
            quality_score=compute_quality_score(record),
            analysis_time=_elapsed(started),
        )

    # -- traversal -------------------------------------------------------

    def _walk(self, root: Node, ctx: TraversalContext) -> None:
        # An entry with no node closes the scope its declaration opened.
        stack: List[Tuple[Optional[Node], int, Optional[str]]] = [(root, 0, None)]
        while stack:
            node, depth, previous = stack.pop()
            if node is None:
                ctx.scope.leave_scope(previous)
                continue

            ctx.max_depth = max(ctx.max_depth, depth)
            declared = self._visit(node, ctx)
            if declared is not None:
                stack.append((None, depth, ctx.scope.enter_scope(declared)))
            for child in reversed(node.named_children):
                stack.append((child, depth + 1, None))

    def _visit(self, node: Node, ctx: TraversalContext) -> Optional[str]:
        """
        Apply every rule matching ``node``. Returns the declared name when the
        node is a function-like declaration, so the caller can scope its
        subtree to it.
        """
        node_type = node.type
        declared = self._function_declaration_name(node)

        if declared is not None:
            self._declare_function(declared, ctx)
        elif node_type == 'variable_declarator':
            name = node.child_by_field_name('name')
            if name is not None and name.type == 'identifier':
                ctx.variables.append(_text(name))
            elif name is not None and name.type == 'array_pattern':
                self._visit_state_declarator(name, node.child_by_field_name('value'), ctx)

        if node_type == 'call_expression':
            self._visit_call(node, ctx)
        elif node_type in JSX_ELEMENT_TYPES:
            tag = node.child_by_field_name('name')
            if tag is not None and COMPONENT_NAME.match(_text(tag)):
                self._record_reference(_text(tag), ctx)
        elif node_type == 'import_statement':
            self._visit_import(node, ctx)
        elif node_type == 'export_statement':
            ctx.exports.extend(self._exported_names(node))
        elif node_type in BRANCH_TYPES:
            ctx.branch_count += 1
            ctx.cyclomatic_complexity += 1
        elif node_type in LOOP_TYPES:
            ctx.loop_count += 1
            ctx.cyclomatic_complexity += 1
        elif node_type == 'binary_expression':
            operator = node.child_by_field_name('operator')
            if operator is not None and _text(operator) in LOGICAL_OPERATORS:
                ctx.cyclomatic_complexity += 1
        elif node_type == 'jsx_attribute':
            if node.named_children and _text(node.named_children[0]) == 'dangerouslySetInnerHTML':
                ctx.issues.append(Issue(
                    kind="security",
                    message="dangerouslySetInnerHTML usage detected - XSS risk",
                    severity="high",
                ))

        return declared

    def _function_declaration_name(self, node: Node) -> Optional[str]:
        if node.type in FUNCTION_DECLARATION_TYPES:
            name = node.child_by_field_name('name')
            return _text(name) if name is not None else None
        if node.type == 'variable_declarator':
            name = node.child_by_field_name('name')
            value = node.child_by_field_name('value')
            if (
                name is not None
                and name.type == 'identifier'
                and value is not None
                and value.type in FUNCTION_EXPRESSION_TYPES
            ):
                return _text(name)
        if node.type in FUNCTION_EXPRESSION_TYPES and node.parent is not None and node.parent.type == 'export_statement':
            # export default function Card() {} can surface as a named expression
            name = node.child_by_field_name('name')
            return _text(name) if name is not None else None
        return None

    def _declare_function(self, name: str, ctx: TraversalContext) -> None:
        kind = classify_declaration(name)
        ctx.functions.append(name)
        ctx.weighted_methods_per_class += 1
        ctx.declared_kinds[name] = kind
        if kind == COMPONENT:
            ctx.components.append(name)
            ctx.render_roots.append(name)
        elif kind == HANDLER:
            ctx.event_handlers.append(name)

    def _visit_state_declarator(self, pattern: Node, value: Optional[Node], ctx: TraversalContext) -> None:
        if value is None or value.type != 'call_expression':
            return
        callee = value.child_by_field_name('function')
        if callee is None or callee.type != 'identifier' or _text(callee) != 'useState':
            return
        elements = [e for e in pattern.named_children if e.type != 'comment']
        if len(elements) != 2 or any(e.type != 'identifier' for e in elements):
            return

        state_name, setter_name = _text(elements[0]), _text(elements[1])
        args = _arguments(value)
        ctx.states.append(StateUnit(
            name=state_name,
            setter_name=setter_name,
            initial_value=render_initial_value(args[0] if args else None),
            owning_component=ctx.scope.current,
        ))
        ctx.setters[setter_name] = state_name

    def _visit_call(self, node: Node, ctx: TraversalContext) -> None:
        callee = node.child_by_field_name('function')
        if callee is None or callee.type != 'identifier':
            return
        name = _text(callee)

        if name.startswith('use'):
            ctx.hooks.append(name)
            if name in EFFECT_HOOKS:
                ctx.effects.append(EffectUnit(
                    owning_component=ctx.scope.current,
                    dependency_names=self._dependency_names(node),
                    effect_kind=name,
                ))

        if name in ctx.setters:
            ctx.transitions.append(StateTransition(
                state_name=ctx.setters[name],
                setter_name=name,
                owning_component=ctx.scope.current,
            ))

        self._record_reference(name, ctx)

        if name == 'eval':
            ctx.issues.append(Issue(
                kind="security",
                message="eval() usage detected - code injection risk",
                severity="high",
            ))

    def _dependency_names(self, call: Node) -> List[str]:
        args = _arguments(call)
        if len(args) < 2 or args[1].type != 'array':
            return []
        return [_text(e) for e in args[1].named_children if e.type == 'identifier']

    def _record_reference(self, target: str, ctx: TraversalContext) -> None:
        """Count a call or JSX render of ``target`` from the current scope."""
        if ctx.scope.at_file_scope:
            return
        source = ctx.scope.current
        if (
            target == source
            or target in BUILTIN_CALLEES
            or target.startswith('use')
            or SETTER_NAME.match(target)
            or target in ctx.setters
        ):
            return
        key = (source, target)
        ctx.references[key] = ctx.references.get(key, 0) + 1

    def _visit_import(self, node: Node, ctx: TraversalContext) -> None:
        source = node.child_by_field_name('source')
        names: List[str] = []

        for child in node.named_children:
            if child.type == 'import_clause':
                names.extend(self._import_clause_names(child))
            elif child.type == 'import_require_clause':
                # import fs = require('fs')
                for part in child.named_children:
                    if part.type == 'identifier':
                        names.append(_text(part))
                    elif part.type == 'string' and source is None:
                        source = part

        ctx.imports.append(ImportEdge(
            source=_unquote(source) if source is not None else "",
            imported_names=names,
        ))
        ctx.coupling_between_objects += 1

    def _import_clause_names(self, clause: Node) -> List[str]:
        names = []
        for child in clause.named_children:
            if child.type == 'identifier':
                names.append(_text(child))
            elif child.type == 'namespace_import':
                names.extend(_text(c) for c in child.named_children if c.type == 'identifier')
            elif child.type == 'named_imports':
                for spec in child.named_children:
                    if spec.type != 'import_specifier':
                        continue
                    local = spec.child_by_field_name('alias') or spec.child_by_field_name('name')
                    if local is not None:
                        names.append(_text(local))
        return names

    def _exported_names(self, node: Node) -> List[str]:
        names: List[str] = []

        declaration = node.child_by_field_name('declaration')
        if declaration is not None:
            if declaration.type in {'lexical_declaration', 'variable_declaration'}:
                for declarator in declaration.named_children:
                    if declarator.type != 'variable_declarator':
                        continue
                    name = declarator.child_by_field_name('name')
                    if name is not None and name.type == 'identifier':
                        names.append(_text(name))
            else:
                name = declaration.child_by_field_name('name')
                if name is not None:
                    names.append(_text(name))

        value = node.child_by_field_name('value')
        if value is not None and value.type in FUNCTION_EXPRESSION_TYPES | {'class'}:
            name = value.child_by_field_name('name')
            if name is not None:
                names.append(_text(name))

        for child in node.named_children:
            if child.type != 'export_clause':
                continue
            for spec in child.named_children:
                if spec.type != 'export_specifier':
                    continue
                exported = spec.child_by_field_name('alias') or spec.child_by_field_name('name')
                if exported is not None:
                    names.append(_unquote(exported))

        return names

    # -- finalization ----------------------------------------------------

    def _build_record(self, ctx: TraversalContext, filename: str, line_count: int) -> AnalysisRecord:
        cyclomatic = ctx.cyclomatic_complexity
        return AnalysisRecord(
            filename=filename,
            line_count=line_count,
            functions=_unique(ctx.functions),
            variables=_unique(ctx.variables),
            event_handlers=_unique(ctx.event_handlers),
            components=_unique(ctx.components),
            hooks=_unique(ctx.hooks),
            imports=list(ctx.imports),
            exports=list(ctx.exports),
            complexity=ComplexityCounters(
                max_depth=ctx.max_depth,
                branch_count=ctx.branch_count,
                loop_count=ctx.loop_count,
                cyclomatic_complexity=cyclomatic,
            ),
            issues=list(ctx.issues),
            metrics=Metrics(
                cyclomatic_complexity=cyclomatic,
                coupling_between_objects=ctx.coupling_between_objects,
                weighted_methods_per_class=ctx.weighted_methods_per_class,
                maintainability_index=compute_maintainability(line_count, cyclomatic),
            ),
            state_model=StateModel(
                states=list(ctx.states),
                transitions=list(ctx.transitions),
                effects=list(ctx.effects),
            ),
            dependency_graph=DependencyGraph(
                functions=[FunctionNode(name=n, kind=k) for n, k in ctx.declared_kinds.items()],
                edges=self._finalize_edges(ctx),
                render_roots=_unique(ctx.render_roots),
            ),
        )

    def _finalize_edges(self, ctx: TraversalContext) -> List[DependencyEdge]:
        edges = []
        for (source, target), count in ctx.references.items():
            if target in ctx.declared_kinds:
                to_kind = ctx.declared_kinds[target]
            elif COMPONENT_NAME.match(target):
                to_kind = COMPONENT
            else:
                # Neither declared here nor a component reference.
                continue
            edges.append(DependencyEdge(
                from_name=source,
                to_name=target,
                call_count=count,
                from_kind=ctx.declared_kinds.get(source, classify_declaration(source)),
                to_kind=to_kind,
            ))
        return edges


def render_initial_value(node: Optional[Node]) -> str:
    """Short textual form of a ``useState`` initializer."""
    if node is None:
        return "undefined"
    node_type = node.type
    if node_type == 'string':
        return f'"{_unquote(node)}"'
    if node_type == 'number':
        return _text(node)
    if node_type in {'true', 'false', 'null'}:
        return node_type
    if node_type == 'array':
        return "[]"
    if node_type == 'object':
        return "{}"
    if node_type in FUNCTION_EXPRESSION_TYPES:
        return "() => ..."
    return "undefined"


def _unique(names: List[str]) -> List[str]:
    return list(dict.fromkeys(names))


def _elapsed(started: float) -> float:
    return round(time.perf_counter() - started, 2)


_analyzer: Optional[StaticAnalyzer] = None


def get_analyzer() -> StaticAnalyzer:
    global _analyzer
    if _analyzer is None:
        _analyzer = StaticAnalyzer()
    return _analyzer


def analyze(source_text: str, filename: str) -> AnalysisRecord:
    return get_analyzer().analyze(source_text, filename)
