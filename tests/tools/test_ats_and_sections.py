"""Tests for optimizeForATS and generateResumeSection."""

from __future__ import annotations

import json

import pytest

from tailr_agent.core.session import ContentType, ContextUpdate, SessionContextStore
from tailr_agent.tools.ats_tool import OptimizeForATSTool
from tailr_agent.tools.base import ToolContext
from tailr_agent.tools.section_tool import SECTION_TEMPLATES, GenerateResumeSectionTool

RESUME = """Summary
Backend engineer with 8 years building payment systems.

Experience
Senior Engineer at Globex
Jan 2020 - Present
- Scaled payments API built with Python and Kafka

Skills
Languages: Python, Go
"""

JOB = """Requirements:
- Experience with Python
- Experience with Kafka

Nice to have:
- Kubernetes
"""


def _session(resume=RESUME, job=JOB) -> SessionContextStore:
    session = SessionContextStore()
    if resume:
        session.update_content("c1", ContextUpdate(ContentType.RESUME, resume, 1))
    if job:
        session.update_content("c1", ContextUpdate(ContentType.JOB_DESCRIPTION, job, 1))
    return session


@pytest.mark.asyncio
async def test_ats_analysis_is_scored_and_stored(embeddings):
    session = _session()
    context = ToolContext(conversation_id="c1", session=session, embeddings=embeddings)

    result = await OptimizeForATSTool().execute({}, context)

    assert result.success
    data = result.data
    assert 0.0 <= data["fitScore"] <= 1.0
    assert data["grade"] in {"Strong Match", "Good Match", "Partial Match", "Weak Match"}
    assert "python" in data["matchedKeywords"]
    assert "kubernetes" in data["missingKeywords"]
    assert {row["category"] for row in data["requirementCoverage"]} == {"skill", "qualification"}
    assert data["analysisVersion"] == 1

    stored = json.loads(session.get_current_content("c1")["analysis"])
    assert stored["fitScore"] == data["fitScore"]

    second = await OptimizeForATSTool().execute({}, context)
    assert second.data["analysisVersion"] == 2


@pytest.mark.asyncio
async def test_ats_fit_score_follows_configured_threshold(embeddings):
    session = _session()

    async def fit(threshold):
        context = ToolContext(
            conversation_id="c1",
            session=session,
            embeddings=embeddings,
            settings={"coverage_threshold": threshold},
        )
        return (await OptimizeForATSTool().execute({}, context)).data["fitScore"]

    lenient = await fit(0.0)
    strict = await fit(1.01)

    # only the resume-focus share of the score depends on the threshold
    assert lenient - strict == pytest.approx(0.2, abs=0.002)


@pytest.mark.asyncio
async def test_ats_focus_sections_limit_resume_items(embeddings):
    context = ToolContext(conversation_id="c1", session=_session(), embeddings=embeddings)

    result = await OptimizeForATSTool().execute({"focusSections": ["skills"]}, context)

    assert result.data["focusSections"] == ["skills"]
    assert {item["section"] for item in result.data["resumeItems"]} == {"skills"}


@pytest.mark.asyncio
async def test_ats_uses_job_description_from_input(embeddings):
    context = ToolContext(conversation_id="c1", session=_session(job=None), embeddings=embeddings)

    result = await OptimizeForATSTool().execute({"jobDescription": JOB}, context)

    assert result.success


@pytest.mark.asyncio
async def test_ats_failures(embeddings):
    tool = OptimizeForATSTool()

    no_job = await tool.execute({}, ToolContext(conversation_id="c1", session=_session(job=None), embeddings=embeddings))
    assert no_job.error == "No job description provided and none stored for this conversation"

    no_resume = await tool.execute({}, ToolContext(conversation_id="c1", session=_session(resume=None), embeddings=embeddings))
    assert no_resume.error == "No resume stored for this conversation"

    empty_focus = await tool.execute(
        {"focusSections": ["projects"]},
        ToolContext(conversation_id="c1", session=_session(), embeddings=embeddings),
    )
    assert empty_focus.error.startswith("The resume has no content in the selected sections")


@pytest.mark.asyncio
async def test_section_template_with_current_content_and_keywords():
    context = ToolContext(conversation_id="c1", session=_session())

    result = await GenerateResumeSectionTool().execute(
        {"sectionType": "skills", "context": "emphasise streaming"}, context
    )

    data = result.data
    assert data["template"] == SECTION_TEMPLATES["skills"]
    assert data["currentContent"] == "Languages: Python, Go"
    assert data["contextProvided"] == "emphasise streaming"
    assert data["message"] == "Generated template for Skills section"
    keywords = {k["keyword"]: k for k in data["jobKeywords"]}
    assert keywords["python"]["inSection"] is True
    assert keywords["python"]["priority"] == "critical"
    assert keywords["kubernetes"]["inSection"] is False


@pytest.mark.asyncio
async def test_section_template_without_documents():
    result = await GenerateResumeSectionTool().execute(
        {"sectionType": "certifications", "context": "AWS"}, ToolContext(conversation_id="c1")
    )

    assert result.data["currentContent"] == ""
    assert result.data["jobKeywords"] == []
    assert result.data["message"] == "Generated template for Certifications section"
