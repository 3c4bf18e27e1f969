"""Schemas for per-student summaries and class reports."""

from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

from results_engine.models import Division, EducationLevel, RankingMetric
from results_engine.schemas.result import GradedResult


class ClassStatistics(BaseModel):
    """Statistics for a set of marks (one subject across a class)."""

    mean: float = 0.0
    median: float = 0.0
    mode: float = 0.0
    standard_deviation: float = 0.0
    count: int = 0
    highest: float = 0.0
    lowest: float = 0.0


class SubjectPerformance(BaseModel):
    """Grade distribution, GPA and pass rate for one subject across a class."""

    subject_id: str
    subject_code: str = ""
    subject_name: str = ""
    is_principal: bool = False
    total_students: int = Field(..., description="Students with a graded result in this subject")
    grade_distribution: dict[str, int]
    gpa: float
    pass_rate: float


class StudentSummary(BaseModel):
    """Everything computed for one student in one exam, rebuilt from the full result set."""

    student_id: str
    education_level: EducationLevel
    results: list[GradedResult] = Field(default_factory=list)
    total_marks: float = 0.0
    average_marks: float | None = Field(None, description="None when the student has no marks")
    total_points: int = 0
    best_n_points: int | None = Field(None, description="Serialized as '-' when no division was computed")
    best_n_results: list[GradedResult] = Field(default_factory=list)
    division: Division = Division.NOT_COMPUTED
    rank: int | None = None
    subject_positions: dict[str, int] = Field(default_factory=dict)
    grade_distribution: dict[str, int] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: str | None = Field(None, description="Reason the summary could not be computed")

    @field_validator("best_n_points", mode="before")
    @classmethod
    def parse_best_n_points(cls, v: Any) -> Any:
        """Read back the "-" placeholder written for students without a division."""
        if isinstance(v, str) and v.strip() == "-":
            return None
        return v

    @field_serializer("best_n_points")
    def serialize_best_n_points(self, value: int | None) -> int | str:
        return "-" if value is None else value

    @property
    def has_division(self) -> bool:
        return self.division != Division.NOT_COMPUTED


class CohortReport(BaseModel):
    """Class report for one class and exam, derived from the student summaries."""

    class_id: str | None = None
    exam_id: str | None = None
    education_level: EducationLevel
    ranked_by: RankingMetric
    total_students: int
    students: list[StudentSummary]
    division_distribution: dict[str, int]
    class_average: float
    examination_gpa: float
    class_pass_rate: float
    class_statistics_by_subject: dict[str, ClassStatistics]
    subject_performance: dict[str, SubjectPerformance]
    rejected_rows: list[dict[str, str]] = Field(
        default_factory=list, description="Input rows skipped because they could not be read, as {row, error}"
    )
