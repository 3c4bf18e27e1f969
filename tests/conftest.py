import pytest

from results_engine.models import EducationLevel
from results_engine.schemas.result import SubjectResult


@pytest.fixture
def make_result():
    def _make_result(
        student_id: str,
        subject_id: str,
        marks: float | None,
        *,
        level: EducationLevel = EducationLevel.A_LEVEL,
        is_principal: bool = False,
        subject_name: str | None = None,
        subject_code: str | None = None,
        exam_id: str | None = "exam-1",
    ) -> SubjectResult:
        return SubjectResult(
            student_id=student_id,
            subject_id=subject_id,
            exam_id=exam_id,
            subject_code=subject_code or subject_id.upper(),
            subject_name=subject_name or subject_id.title(),
            marks_obtained=marks,
            is_principal=is_principal,
            education_level=level,
        )

    return _make_result
