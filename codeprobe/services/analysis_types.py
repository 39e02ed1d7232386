from dataclasses import dataclass, field
from typing import List, Optional

COMPONENT = "component"
HANDLER = "handler"
HELPER = "helper"


@dataclass(frozen=True)
class ImportEdge:
    source: str
    imported_names: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Issue:
    kind: str  # "security"
    message: str
    severity: str  # "high" | "medium" | "low"


@dataclass(frozen=True)
class ComplexityCounters:
    max_depth: int = 0
    branch_count: int = 0
    loop_count: int = 0
    cyclomatic_complexity: int = 1


@dataclass(frozen=True)
class Metrics:
    cyclomatic_complexity: int = 1
    coupling_between_objects: int = 0
    weighted_methods_per_class: int = 0
    maintainability_index: int = 100


@dataclass(frozen=True)
class StateUnit:
    name: str
    setter_name: str
    initial_value: str
    owning_component: str


@dataclass(frozen=True)
class StateTransition:
    state_name: str
    setter_name: str
    owning_component: str


@dataclass(frozen=True)
class EffectUnit:
    owning_component: str
    dependency_names: List[str]
    effect_kind: str  # "useEffect" | "useCallback" | "useMemo"


@dataclass(frozen=True)
class StateModel:
    states: List[StateUnit] = field(default_factory=list)
    transitions: List[StateTransition] = field(default_factory=list)
    effects: List[EffectUnit] = field(default_factory=list)


@dataclass(frozen=True)
class FunctionNode:
    name: str
    kind: str  # component | handler | helper


@dataclass(frozen=True)
class DependencyEdge:
    from_name: str
    to_name: str
    call_count: int
    from_kind: str
    to_kind: str


@dataclass(frozen=True)
class DependencyGraph:
    functions: List[FunctionNode] = field(default_factory=list)
    edges: List[DependencyEdge] = field(default_factory=list)
    # Components declared in the file; the roots a UI tree renders from.
    render_roots: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class AnalysisRecord:
    """
    Result of analyzing one source file.

    Success records populate every analytical field and leave ``error`` as
    None. Error records (the source did not parse) carry only the filename,
    line count, error message and duration; every analytical field is None.
    """
    filename: str
    line_count: int
    analysis_time: float = 0.0
    error: Optional[str] = None
    quality_score: int = 0
    functions: Optional[List[str]] = None
    variables: Optional[List[str]] = None
    event_handlers: Optional[List[str]] = None
    components: Optional[List[str]] = None
    hooks: Optional[List[str]] = None
    imports: Optional[List[ImportEdge]] = None
    exports: Optional[List[str]] = None
    complexity: Optional[ComplexityCounters] = None
    issues: Optional[List[Issue]] = None
    metrics: Optional[Metrics] = None
    state_model: Optional[StateModel] = None
    dependency_graph: Optional[DependencyGraph] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, filename: str, line_count: int, message: str, analysis_time: float = 0.0) -> "AnalysisRecord":
        return cls(
            filename=filename,
            line_count=line_count,
            analysis_time=analysis_time,
            error=message,
        )


@dataclass(frozen=True)
class ProjectSummary:
    total_files: int = 0
    failed_files: int = 0
    total_loc: int = 0
    total_functions: int = 0
    total_variables: int = 0
    total_event_handlers: int = 0
    total_components: int = 0
    hooks: List[str] = field(default_factory=list)
    import_sources: List[str] = field(default_factory=list)
    total_issues: int = 0
    avg_quality_score: int = 0
    avg_cyclomatic_complexity: int = 0
    avg_maintainability_index: int = 0
    total_cbo: int = 0
    total_wmc: int = 0
    total_analysis_time: float = 0.0
    dependency_graph: DependencyGraph = field(default_factory=DependencyGraph)
    states: List[StateUnit] = field(default_factory=list)
    transitions: List[StateTransition] = field(default_factory=list)
    effects: List[EffectUnit] = field(default_factory=list)
