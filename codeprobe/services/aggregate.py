from typing import Dict, Iterable, List, Sequence, Tuple

from codeprobe.services.analysis_types import (
    AnalysisRecord,
    DependencyEdge,
    DependencyGraph,
    FunctionNode,
    ProjectSummary,
)
from codeprobe.services.scoring import round_half_up


def merge_dependency_graphs(graphs: Iterable[DependencyGraph]) -> DependencyGraph:
    """
    Merge per-file graphs into one project graph.

    Call counts for the same (from, to) pair are summed. A function's kind
    comes from the last file that declares it; edge endpoints pick up that
    kind, falling back to the kind the edge carried for names declared
    nowhere (external component references).
    """
    kinds: Dict[str, str] = {}
    counts: Dict[Tuple[str, str], int] = {}
    fallback_kinds: Dict[Tuple[str, str], Tuple[str, str]] = {}
    render_roots: Dict[str, None] = {}

    for graph in graphs:
        for fn in graph.functions:
            kinds[fn.name] = fn.kind
        for edge in graph.edges:
            key = (edge.from_name, edge.to_name)
            counts[key] = counts.get(key, 0) + edge.call_count
            fallback_kinds[key] = (edge.from_kind, edge.to_kind)
        for name in graph.render_roots:
            render_roots[name] = None

    edges = []
    for (source, target), count in counts.items():
        from_kind, to_kind = fallback_kinds[(source, target)]
        edges.append(DependencyEdge(
            from_name=source,
            to_name=target,
            call_count=count,
            from_kind=kinds.get(source, from_kind),
            to_kind=kinds.get(target, to_kind),
        ))

    return DependencyGraph(
        functions=[FunctionNode(name=name, kind=kind) for name, kind in kinds.items()],
        edges=edges,
        render_roots=list(render_roots),
    )


def _mean(values: Sequence[float]) -> int:
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


def _union(groups: Iterable[Iterable[str]]) -> List[str]:
    seen: Dict[str, None] = {}
    for group in groups:
        for item in group:
            seen[item] = None
    return list(seen)


def aggregate(records: Sequence[AnalysisRecord]) -> ProjectSummary:
    """
    Summarize a project from its per-file records.

    Line counts include files that failed to parse; every other figure is
    taken over the successfully analyzed files only.
    """
    ok = [r for r in records if r.ok]

    return ProjectSummary(
        total_files=len(records),
        failed_files=len(records) - len(ok),
        total_loc=sum(r.line_count for r in records),
        total_functions=sum(len(r.functions) for r in ok),
        total_variables=sum(len(r.variables) for r in ok),
        total_event_handlers=sum(len(r.event_handlers) for r in ok),
        total_components=sum(len(r.components) for r in ok),
        hooks=_union(r.hooks for r in ok),
        import_sources=_union((i.source for i in r.imports) for r in ok),
        total_issues=sum(len(r.issues) for r in ok),
        avg_quality_score=_mean([r.quality_score for r in ok]),
        avg_cyclomatic_complexity=_mean([r.metrics.cyclomatic_complexity for r in ok]),
        avg_maintainability_index=_mean([r.metrics.maintainability_index for r in ok]),
        total_cbo=sum(r.metrics.coupling_between_objects for r in ok),
        total_wmc=sum(r.metrics.weighted_methods_per_class for r in ok),
        total_analysis_time=round(sum(r.analysis_time for r in ok), 2),
        dependency_graph=merge_dependency_graphs(r.dependency_graph for r in ok),
        states=[s for r in ok for s in r.state_model.states],
        transitions=[t for r in ok for t in r.state_model.transitions],
        effects=[e for r in ok for e in r.state_model.effects],
    )
