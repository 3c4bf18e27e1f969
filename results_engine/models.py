import enum


class EducationLevel(str, enum.Enum):
    O_LEVEL = "O_LEVEL"
    A_LEVEL = "A_LEVEL"


class Grade(str, enum.Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    S = "S"
    F = "F"
    NOT_GRADED = "-"


class Division(str, enum.Enum):
    I = "I"
    II = "II"
    III = "III"
    IV = "IV"
    ZERO = "0"  # computed, failing
    NOT_COMPUTED = "-"  # insufficient data


PASSING_DIVISIONS = frozenset({Division.I, Division.II, Division.III, Division.IV})


class RankDirection(str, enum.Enum):
    ASCENDING = "ascending"  # lower metric ranks first (points)
    DESCENDING = "descending"  # higher metric ranks first (marks)


class RankingMetric(str, enum.Enum):
    AVERAGE_MARKS = "average_marks"
    BEST_N_POINTS = "best_n_points"
