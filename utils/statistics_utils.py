import numpy as np
from scipy.stats import skew

from utils.attendance_utils import attendance_marks
from utils.grade_calculation import GRADE_LABELS, PASS_THRESHOLD, grade_from_total


def calculate_course_statistics(totals):
    """Summary figures over a course's 100-point totals.

    Returns count, average, top, lowest, median, standard deviation, skewness
    (only with three or more scores), pass count/rate and how many students
    fall in each grade band. Empty input yields zeros and an empty-band
    distribution.
    """
    scores = [float(t) for t in (totals or []) if t is not None]
    distribution = {label: 0 for label in GRADE_LABELS}
    for score in scores:
        distribution[grade_from_total(score)] += 1

    if not scores:
        return {
            "count": 0,
            "average": 0.0,
            "top": 0.0,
            "lowest": 0.0,
            "median": 0.0,
            "std_dev": 0.0,
            "skewness": None,
            "pass_count": 0,
            "pass_rate": 0.0,
            "grade_distribution": distribution,
        }

    arr = np.array(scores)
    pass_count = int(np.sum(arr >= PASS_THRESHOLD))
    skewness = None
    # skew is undefined for constant data
    if len(scores) >= 3 and float(np.std(arr)) > 0:
        skewness = round(float(skew(arr)), 3)

    return {
        "count": len(scores),
        "average": round(float(np.mean(arr)), 2),
        "top": round(float(np.max(arr)), 2),
        "lowest": round(float(np.min(arr)), 2),
        "median": round(float(np.median(arr)), 2),
        "std_dev": round(float(np.std(arr)), 2),
        "skewness": skewness,
        "pass_count": pass_count,
        "pass_rate": round(pass_count / len(scores) * 100, 1),
        "grade_distribution": distribution,
    }


def calculate_attendance_statistics(percentages):
    """Average attendance and how many students sit at each 0-5 marks level."""
    values = [float(p) for p in (percentages or []) if p is not None]
    levels = {str(m): 0 for m in range(5, -1, -1)}
    for value in values:
        levels[str(attendance_marks(value))] += 1
    return {
        "count": len(values),
        "average_percentage": round(float(np.mean(values)), 2) if values else 0.0,
        "marks_distribution": levels,
    }
