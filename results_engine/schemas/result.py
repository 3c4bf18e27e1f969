"""Schemas for subject results flowing into the scoring engine."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from results_engine.models import Division, EducationLevel, Grade
from results_engine.utils.grade_utils import resolve_education_level
from results_engine.utils.score_utils import parse_marks


class SubjectResult(BaseModel):
    """One student's raw marks in one subject for one exam."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    student_id: str
    subject_id: str
    exam_id: str | None = None
    subject_code: str = ""
    subject_name: str = ""
    marks_obtained: float | None = Field(None, description="Marks in [0, 100]; None when absent or not entered")
    is_principal: bool = False
    subject_type: str | None = Field(None, description="Upstream subject type, e.g. PRINCIPAL or SUBSIDIARY; PRINCIPAL marks the subject principal in class reports")
    education_level: EducationLevel

    @field_validator("student_id", "subject_id", "exam_id", mode="before")
    @classmethod
    def normalize_id(cls, v: Any) -> Any:
        """Resolve ids to plain strings once, at the ingestion boundary."""
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, dict):
            v = v.get("_id", v.get("id"))
        return str(v) if v is not None else v

    @field_validator("subject_code", "subject_name", mode="before")
    @classmethod
    def normalize_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("marks_obtained", mode="before")
    @classmethod
    def normalize_marks(cls, v: Any) -> float | None:
        """Malformed or out-of-range marks become absent rather than failing validation."""
        return parse_marks(v)

    @field_validator("is_principal", mode="before")
    @classmethod
    def normalize_is_principal(cls, v: Any) -> bool:
        return v is True or (isinstance(v, str) and v.strip().lower() == "true")

    @field_validator("education_level", mode="before")
    @classmethod
    def normalize_education_level(cls, v: Any) -> EducationLevel:
        return resolve_education_level(v)


class GradedResult(SubjectResult):
    """A SubjectResult with grade, points and remarks derived from its marks."""

    grade: Grade
    points: int
    remarks: str


class SelectionResult(BaseModel):
    """Outcome of picking the best-N results that count toward a division."""

    best_results: list[GradedResult] = Field(default_factory=list)
    best_points: int | None = Field(None, description="Sum of best_results points; None when no division was computed")
    division: Division = Division.NOT_COMPUTED
    qualifying_count: int = 0
    principal_source: str = Field(
        "all", description="How principal results were found: combination, flag, fallback or all"
    )
    warnings: list[str] = Field(default_factory=list)

    @property
    def is_computed(self) -> bool:
        return self.division != Division.NOT_COMPUTED
