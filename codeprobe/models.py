from typing import List

from pydantic import BaseModel, Field

from codeprobe.services.analysis_types import AnalysisRecord, ProjectSummary


class SourceFileIn(BaseModel):
    filename: str
    source: str


class BatchRequest(BaseModel):
    # Use default_factory to avoid sharing the same list across instances
    files: List[SourceFileIn] = Field(default_factory=list)


class ProjectReport(BaseModel):
    root: str
    files: List[AnalysisRecord] = Field(default_factory=list)
    summary: ProjectSummary = Field(default_factory=ProjectSummary)
