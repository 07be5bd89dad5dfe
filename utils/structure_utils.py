from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from utils.records import (
    AssessmentCategory,
    AssessmentRecord,
    CourseType,
    resolve_category,
    resolve_course_type,
)

# Lab formula pools everything except these into the lab-item bucket.
LAB_RESERVED = (
    AssessmentCategory.MIDTERM,
    AssessmentCategory.FINAL,
    AssessmentCategory.ATTENDANCE,
)


def classify_assessment(name: str, course_type: Any) -> AssessmentCategory:
    """Infer an assessment's role from its free-text name.

    Matching is a case-insensitive substring test, checked in a fixed order so
    the same name always lands in the same category:

    - theory/hybrid: ct, mid, final, att, assign, present, otherwise other
    - lab: mid, final, att, otherwise lab-item
    """
    text = str(name or "").lower()
    if resolve_course_type(course_type) is CourseType.LAB:
        if "mid" in text:
            return AssessmentCategory.MIDTERM
        if "final" in text:
            return AssessmentCategory.FINAL
        if "att" in text:
            return AssessmentCategory.ATTENDANCE
        return AssessmentCategory.LAB_ITEM

    if "ct" in text:
        return AssessmentCategory.CLASS_TEST
    if "mid" in text:
        return AssessmentCategory.MIDTERM
    if "final" in text:
        return AssessmentCategory.FINAL
    if "att" in text:
        return AssessmentCategory.ATTENDANCE
    if "assign" in text:
        return AssessmentCategory.ASSIGNMENT
    if "present" in text:
        return AssessmentCategory.PRESENTATION
    return AssessmentCategory.OTHER


def category_for(assessment: AssessmentRecord, course_type: Any) -> AssessmentCategory:
    """Stored category wins; the name heuristic is only the fallback."""
    explicit = resolve_category(assessment.category)
    if explicit is not None:
        return explicit
    return classify_assessment(assessment.name, course_type)


def order_assessments(assessments: Iterable[AssessmentRecord]) -> List[AssessmentRecord]:
    """Sort assessments into column order.

    Ascending ``order``; an assessment without one takes its list index. Ties
    go to the earliest ``created_at`` (unknown creation time sorts first), then
    to input position so the result is stable.
    """
    keyed = []
    for idx, assessment in enumerate(assessments or []):
        order = assessment.order if assessment.order is not None else idx
        created = assessment.created_at
        created_key = created.timestamp() if isinstance(created, datetime) else float("-inf")
        keyed.append(((order, created_key, idx), assessment))
    keyed.sort(key=lambda item: item[0])
    return [assessment for _, assessment in keyed]


def suggest_category(name: str, course_type: Any) -> str:
    return classify_assessment(name, course_type).value


def backfill_categories(assessments: Iterable[Any], course_type: Any) -> List[Dict]:
    """Fill the explicit ``category`` of assessments that have none.

    Works on ORM objects (or anything with ``name``/``category`` attributes) and
    returns one change row per updated assessment. Assessments that already
    carry a valid category are left alone, so running it twice is a no-op.
    """
    changes: List[Dict] = []
    for assessment in assessments or []:
        current: Optional[AssessmentCategory] = resolve_category(
            getattr(assessment, "category", None)
        )
        if current is not None:
            continue
        suggested = suggest_category(getattr(assessment, "name", ""), course_type)
        assessment.category = suggested
        changes.append(
            {
                "assessment_id": getattr(assessment, "id", None),
                "name": getattr(assessment, "name", ""),
                "category": suggested,
            }
        )
    return changes
