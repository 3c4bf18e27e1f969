from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings

from results_engine.models import EducationLevel, RankingMetric


class DivisionPolicy(BaseModel):
    """Per-level rules for picking the results that count toward a division."""

    model_config = ConfigDict(frozen=True)

    education_level: EducationLevel
    best_n: int
    min_qualifying: int
    excluded_subjects: tuple[str, ...] = ()
    principal_only: bool = False


class Settings(BaseSettings):
    # A-Level (ACSEE): best three principal subjects
    a_level_best_n: int = 3
    a_level_min_qualifying: int = 3
    a_level_excluded_subjects: list[str] = ["general studies"]
    a_level_min_subsidiary: int = 2
    # O-Level (CSEE): best seven subjects
    o_level_best_n: int = 7
    o_level_min_qualifying: int = 7
    o_level_excluded_subjects: list[str] = []
    o_level_credit_boundary: float = 45.0  # lower bound of grade C
    o_level_core_subjects: list[str] = [
        "ENGLISH",
        "KISWAHILI",
        "MATHEMATICS",
        "BIOLOGY",
        "CIVICS",
        "GEOGRAPHY",
        "HISTORY",
    ]
    # Cohort settings
    rank_by: RankingMetric = RankingMetric.AVERAGE_MARKS
    require_subject_combination: bool = False  # If True, students missing from the combinations lookup get no division

    def division_policy(self, level: EducationLevel) -> DivisionPolicy:
        if level == EducationLevel.A_LEVEL:
            return DivisionPolicy(
                education_level=level,
                best_n=self.a_level_best_n,
                min_qualifying=self.a_level_min_qualifying,
                excluded_subjects=tuple(name.lower() for name in self.a_level_excluded_subjects),
                principal_only=True,
            )
        return DivisionPolicy(
            education_level=level,
            best_n=self.o_level_best_n,
            min_qualifying=self.o_level_min_qualifying,
            excluded_subjects=tuple(name.lower() for name in self.o_level_excluded_subjects),
            principal_only=False,
        )


settings = Settings()  # type: ignore
