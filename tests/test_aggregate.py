from codeprobe.services.aggregate import aggregate, merge_dependency_graphs
from codeprobe.services.analysis_types import (
    AnalysisRecord,
    DependencyEdge,
    DependencyGraph,
    FunctionNode,
    ProjectSummary,
)
from codeprobe.services.static_analysis import StaticAnalyzer


def test_aggregate_empty_is_all_zero():
    summary = aggregate([])

    assert summary == ProjectSummary()
    assert summary.avg_quality_score == 0
    assert summary.avg_cyclomatic_complexity == 0
    assert summary.avg_maintainability_index == 0
    assert summary.total_loc == 0
    assert summary.dependency_graph.edges == []


def test_aggregate_only_failures_keeps_loc_and_zero_means():
    records = [
        AnalysisRecord.failed("a.js", 10, "Unexpected token (1:1)", 0.5),
        AnalysisRecord.failed("b.js", 5, "Unexpected token (2:3)", 0.25),
    ]

    summary = aggregate(records)

    assert summary.total_files == 2
    assert summary.failed_files == 2
    assert summary.total_loc == 15
    assert summary.avg_quality_score == 0
    assert summary.total_functions == 0
    # Durations are summed over successful files only.
    assert summary.total_analysis_time == 0.0


def test_aggregate_mixed_project():
    analyzer = StaticAnalyzer()
    app = analyzer.analyze(
        "import { useState } from 'react';\n"
        "import Card from './Card';\n"
        "function App() {\n"
        "  const [open, setOpen] = useState(false);\n"
        "  const handleToggle = () => setOpen(!open);\n"
        "  return <Card onClick={handleToggle} />;\n"
        "}\n",
        "App.jsx",
    )
    card = analyzer.analyze(
        "import { useEffect } from 'react';\n"
        "export default function Card({ onClick }) {\n"
        "  useEffect(() => {}, [onClick]);\n"
        "  if (onClick) { return <button onClick={onClick} />; }\n"
        "  return null;\n"
        "}\n",
        "Card.jsx",
    )
    broken = AnalysisRecord.failed("broken.js", 4, "Unexpected token (1:1)")

    summary = aggregate([app, broken, card])

    assert summary.total_files == 3
    assert summary.failed_files == 1
    assert summary.total_loc == app.line_count + card.line_count + 4
    assert summary.total_functions == 3
    assert summary.total_components == 2
    assert summary.total_event_handlers == 1
    assert summary.hooks == ["useState", "useEffect"]
    assert summary.import_sources == ["react", "./Card"]
    assert summary.total_cbo == 3
    assert summary.total_wmc == 3
    assert summary.avg_cyclomatic_complexity == 2  # (1 + 2) / 2 rounds half up
    assert len(summary.states) == 1
    assert len(summary.transitions) == 1
    assert len(summary.effects) == 1

    edges = {(e.from_name, e.to_name): e for e in summary.dependency_graph.edges}
    assert set(edges) == {("App", "Card")}
    assert edges[("App", "Card")].to_kind == "component"


def test_aggregate_does_not_mutate_records():
    record = StaticAnalyzer().analyze("function A() { return <B />; }\n", "A.jsx")
    before = record.dependency_graph.edges[:]

    aggregate([record, record])

    assert record.dependency_graph.edges == before


def test_merge_sums_counts_and_last_kind_wins():
    first = DependencyGraph(
        functions=[FunctionNode("App", "component"), FunctionNode("load", "helper")],
        edges=[DependencyEdge("App", "load", 2, "component", "helper")],
        render_roots=["App"],
    )
    second = DependencyGraph(
        functions=[FunctionNode("load", "handler")],
        edges=[
            DependencyEdge("App", "load", 3, "component", "helper"),
            DependencyEdge("App", "Modal", 1, "component", "component"),
        ],
        render_roots=["App"],
    )

    merged = merge_dependency_graphs([first, second])

    edges = {(e.from_name, e.to_name): e for e in merged.edges}
    assert edges[("App", "load")].call_count == 5
    assert edges[("App", "load")].to_kind == "handler"
    assert edges[("App", "Modal")].to_kind == "component"
    assert {f.name: f.kind for f in merged.functions} == {"App": "component", "load": "handler"}
    assert merged.render_roots == ["App"]
