import pytest

from tailr_agent.core.embeddings import JobRequirements
from tailr_agent.domain.scoring import (
    category_score,
    overall_fit_score,
    requirement_fit_score,
    resume_focus_score,
    score_to_grade,
)


def test_category_score_weights_earlier_items_more():
    assert category_score(["a", "b"], {"a": 1.0}) == pytest.approx(1.0 / 1.9)
    assert category_score(["a", "b"], {"b": 1.0}) == pytest.approx(0.9 / 1.9)
    assert category_score([], {}) == 0.0


def test_category_score_ignores_items_past_tenth():
    items = [f"r{i}" for i in range(12)]
    coverage = {item: 1.0 for item in items[:10]}
    assert category_score(items, coverage) == pytest.approx(1.0)


def test_requirement_fit_uses_category_weights():
    requirements = JobRequirements(skills=["a"], responsibilities=["b"], qualifications=["c"])

    assert requirement_fit_score(requirements, {"a": 1.0}) == pytest.approx(0.5)
    assert requirement_fit_score(requirements, {"b": 1.0, "c": 1.0}) == pytest.approx(0.5)


def test_resume_focus_score():
    assert resume_focus_score({"x": 0.9, "y": 0.1}) == pytest.approx(0.5)
    assert resume_focus_score({}) == 0.0


def test_overall_fit_score_combines_and_clamps():
    requirements = JobRequirements(skills=["a"], responsibilities=["b"], qualifications=["c"])
    full = {"a": 1.0, "b": 1.0, "c": 1.0}

    assert overall_fit_score(requirements, full, {"x": 0.9, "y": 0.1}) == pytest.approx(0.9)
    assert overall_fit_score(requirements, {k: -1.0 for k in full}, {}) == 0.0


def test_overall_fit_score_uses_focus_threshold():
    requirements = JobRequirements(skills=["a"], responsibilities=["b"], qualifications=["c"])
    full = {"a": 1.0, "b": 1.0, "c": 1.0}

    assert overall_fit_score(requirements, full, {"x": 0.3, "y": 0.1}) == pytest.approx(0.8)
    assert overall_fit_score(requirements, full, {"x": 0.3, "y": 0.1}, threshold=0.05) == pytest.approx(1.0)


@pytest.mark.parametrize(
    "score,grade",
    [(0.9, "Strong Match"), (0.85, "Strong Match"), (0.7, "Good Match"), (0.5, "Partial Match"), (0.49, "Weak Match")],
)
def test_score_to_grade(score, grade):
    assert score_to_grade(score) == grade
