"""Overall resume-to-job fit score from semantic coverage figures.

Requirement fit weighs required skills, key responsibilities and preferred
qualifications; within each category earlier items weigh more. Resume focus
is the share of resume items that are relevant to at least one requirement.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence

from tailr_agent.core.embeddings import JobRequirements

CATEGORY_WEIGHTS: Dict[str, float] = {
    "required_skills": 0.5,
    "key_responsibilities": 0.3,
    "preferred_qualifications": 0.2,
}
RELEVANCE_THRESHOLD = 0.5
REQUIREMENT_FIT_WEIGHT = 0.8
RESUME_FOCUS_WEIGHT = 0.2


def category_score(items: Sequence[str], coverage: Mapping[str, float]) -> float:
    """Position-weighted mean coverage: weights 1.0, 0.9, 0.8, ... down to zero."""
    total_weighted = 0.0
    total_weight = 0.0
    for index, item in enumerate(items):
        weight = 1.0 - index * 0.1
        if weight <= 0:
            break
        total_weighted += coverage.get(item, 0.0) * weight
        total_weight += weight
    return total_weighted / total_weight if total_weight > 0 else 0.0


def requirement_categories(requirements: JobRequirements) -> Dict[str, List[str]]:
    return {
        "required_skills": list(requirements.skills),
        "key_responsibilities": list(requirements.responsibilities),
        "preferred_qualifications": list(requirements.qualifications),
    }


def requirement_fit_score(requirements: JobRequirements, requirement_coverage: Mapping[str, float]) -> float:
    categories = requirement_categories(requirements)
    return sum(
        category_score(categories[name], requirement_coverage) * weight for name, weight in CATEGORY_WEIGHTS.items()
    )


def resume_focus_score(resume_coverage: Mapping[str, float], threshold: float = RELEVANCE_THRESHOLD) -> float:
    if not resume_coverage:
        return 0.0
    relevant = sum(1 for score in resume_coverage.values() if score >= threshold)
    return relevant / len(resume_coverage)


def overall_fit_score(
    requirements: JobRequirements,
    requirement_coverage: Mapping[str, float],
    resume_coverage: Mapping[str, float],
    threshold: float = RELEVANCE_THRESHOLD,
) -> float:
    """Final score in [0, 1]."""
    score = (
        requirement_fit_score(requirements, requirement_coverage) * REQUIREMENT_FIT_WEIGHT
        + resume_focus_score(resume_coverage, threshold) * RESUME_FOCUS_WEIGHT
    )
    return max(0.0, min(score, 1.0))


def score_to_grade(score: float) -> str:
    if score >= 0.85:
        return "Strong Match"
    elif score >= 0.7:
        return "Good Match"
    elif score >= 0.5:
        return "Partial Match"
    else:
        return "Weak Match"
