"""Performance assessment criteria catalogue and scoring."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Criterion:
    key: str
    label: str
    description: str


@dataclass(frozen=True)
class CriteriaSection:
    key: str
    title: str
    criteria: tuple[Criterion, ...]


ASSESSMENT_CRITERIA: tuple[CriteriaSection, ...] = (
    CriteriaSection(
        "work_quality",
        "Work Quality",
        (
            Criterion("deliverable_quality", "Deliverable Quality", "Met specifications and success criteria"),
            Criterion("accuracy", "Accuracy", "Work was thorough and error-free"),
            Criterion("critical_thinking", "Critical Thinking", "Demonstrated analysis and judgment"),
            Criterion(
                "creativity_initiative",
                "Creativity/Initiative",
                "Brought fresh ideas or went beyond basics",
            ),
        ),
    ),
    CriteriaSection(
        "communication",
        "Communication",
        (
            Criterion(
                "written_communication",
                "Written Communication",
                "Clear, professional written correspondence",
            ),
            Criterion("verbal_communication", "Verbal Communication", "Articulate in meetings and discussions"),
            Criterion("responsiveness", "Responsiveness", "Timely replies and follow-ups"),
            Criterion("active_listening", "Active Listening", "Understood instructions and feedback"),
        ),
    ),
    CriteriaSection(
        "professionalism",
        "Professionalism",
        (
            Criterion("reliability", "Reliability", "Met deadlines and commitments"),
            Criterion("adaptability", "Adaptability", "Adjusted to changes and feedback"),
            Criterion("teamwork", "Teamwork", "Collaborated effectively with others"),
            Criterion("professional_conduct", "Professional Conduct", "Appropriate behavior and attitude"),
        ),
    ),
    CriteriaSection(
        "overall_performance",
        "Overall Performance",
        (
            Criterion(
                "overall_rating",
                "Overall Performance Rating",
                "Holistic assessment of student contribution",
            ),
        ),
    ),
)

RATING_SCALE: dict[int, str] = {
    1: "Below Expectations",
    2: "Needs Improvement",
    3: "Meets Expectations",
    4: "Exceeds Expectations",
    5: "Outstanding",
}

MIN_RATING = min(RATING_SCALE)
MAX_RATING = max(RATING_SCALE)

CRITERION_KEYS = frozenset(c.key for section in ASSESSMENT_CRITERIA for c in section.criteria)


def validate_ratings(ratings: dict[str, object]) -> list[str]:
    """Return a list of problems with ``ratings`` (empty when valid)."""
    errors: list[str] = []
    if not ratings:
        errors.append("At least one rating is required")
    for key, value in ratings.items():
        if key not in CRITERION_KEYS:
            errors.append(f"Unknown criterion '{key}'")
        # bool is an int subclass; a checkbox value is not a score
        elif isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"Rating for '{key}' must be an integer")
        elif not MIN_RATING <= value <= MAX_RATING:
            errors.append(f"Rating for '{key}' must be between {MIN_RATING} and {MAX_RATING}")
    return errors


def section_averages(ratings: dict[str, int]) -> dict[str, float | None]:
    """Mean rating per section; None for a section with no rated criteria."""
    averages: dict[str, float | None] = {}
    for section in ASSESSMENT_CRITERIA:
        scores = [ratings[c.key] for c in section.criteria if c.key in ratings]
        averages[section.key] = sum(scores) / len(scores) if scores else None
    return averages


def overall_average(ratings: dict[str, int]) -> float | None:
    if not ratings:
        return None
    return sum(ratings.values()) / len(ratings)


def criteria_catalogue() -> dict:
    """JSON-ready catalogue published to assessors."""
    return {
        "sections": [
            {
                "key": section.key,
                "title": section.title,
                "criteria": [
                    {"key": c.key, "label": c.label, "description": c.description}
                    for c in section.criteria
                ],
            }
            for section in ASSESSMENT_CRITERIA
        ],
        "rating_scale": {str(score): label for score, label in RATING_SCALE.items()},
    }
