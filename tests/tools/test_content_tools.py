"""Tests for findContent and replaceContent."""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from tailr_agent.core.session import ContentType, ContextUpdate, SessionContextStore
from tailr_agent.tools.base import ToolContext
from tailr_agent.tools.content_tools import FindContentTool, ReplaceContentTool, element_locator, resolve_element

RESUME_HTML = (
    "<html><body>"
    '<div class="section" id="summary"><p>Backend engineer focused on payments.</p></div>'
    '<div class="section"><h2>Experience</h2><ul>'
    '<li class="bullet">Built a payment service in Go</li>'
    '<li class="bullet">Led migration to Kafka</li>'
    "</ul></div>"
    "</body></html>"
)


@pytest.fixture
def context() -> ToolContext:
    session = SessionContextStore()
    session.update_content("c1", ContextUpdate(ContentType.RESUME, RESUME_HTML, 1))
    return ToolContext(conversation_id="c1", session=session)


@pytest.mark.asyncio
async def test_find_returns_innermost_element_with_locator(context):
    result = await FindContentTool().execute(
        {"contentPattern": "payment service", "description": "locate bullet"}, context
    )

    assert result.success
    assert result.data["totalMatches"] == 1
    match = result.data["matches"][0]
    assert match["elementId"] == "@body/div[2]/ul[1]/li[1]"
    assert match["elementClass"] == "bullet"
    assert match["tag"] == "li"
    assert match["content"] == "Built a payment service in Go"
    assert match["context"] == "Built a payment service in Go Led migration to Kafka"
    assert result.data["resumeVersion"] == 1
    assert result.data["description"] == "locate bullet"


@pytest.mark.asyncio
async def test_find_is_case_insensitive(context):
    result = await FindContentTool().execute({"contentPattern": "KAFKA", "description": "x"}, context)

    assert [m["elementId"] for m in result.data["matches"]] == ["@body/div[2]/ul[1]/li[2]"]


@pytest.mark.asyncio
async def test_find_without_matches(context):
    result = await FindContentTool().execute({"contentPattern": "cobol", "description": "x"}, context)

    assert result.success
    assert result.data["matches"] == []
    assert result.data["message"] == "No content matching 'cobol' found in the resume"


@pytest.mark.asyncio
async def test_find_without_resume_fails():
    context = ToolContext(conversation_id="c1", session=SessionContextStore())

    result = await FindContentTool().execute({"contentPattern": "x", "description": "x"}, context)

    assert not result.success
    assert result.error == "No resume stored for this conversation"


@pytest.mark.asyncio
async def test_replace_by_locator_creates_new_version(context):
    result = await ReplaceContentTool().execute(
        {
            "elementId": "@body/div[2]/ul[1]/li[2]",
            "newContent": "Led migration to <b>Kafka</b> and Flink",
            "nextStep": "update skills",
        },
        context,
    )

    assert result.success
    assert result.data["version"] == 2
    assert result.data["oldContent"] == "Led migration to Kafka"
    assert result.data["nextStep"] == "update skills"
    stored = context.session.get_content("c1", ContentType.RESUME)
    assert stored.version == 2
    assert '<li class="bullet">Led migration to <b>Kafka</b> and Flink</li>' in stored.content
    assert "Built a payment service in Go" in stored.content


@pytest.mark.asyncio
async def test_replace_by_id(context):
    result = await ReplaceContentTool().execute(
        {"elementId": "summary", "newContent": "<p>Payments engineer.</p>"}, context
    )

    assert result.success
    stored = context.session.get_content("c1", ContentType.RESUME).content
    assert '<div class="section" id="summary"><p>Payments engineer.</p></div>' in stored


@pytest.mark.asyncio
async def test_replace_unknown_element_fails_without_new_version(context):
    result = await ReplaceContentTool().execute({"elementId": "nope", "newContent": "x"}, context)

    assert not result.success
    assert result.error == "Element 'nope' not found in resume"
    assert context.session.get_context("c1").resume.version == 1


@pytest.mark.asyncio
async def test_find_then_replace_round_trip(context):
    found = await FindContentTool().execute({"contentPattern": "focused on payments", "description": "x"}, context)
    element_id = found.data["matches"][0]["elementId"]

    await ReplaceContentTool().execute({"elementId": element_id, "newContent": "Platform engineer."}, context)
    again = await FindContentTool().execute({"contentPattern": "Platform engineer", "description": "x"}, context)

    assert again.data["matches"][0]["elementId"] == element_id
    assert again.data["resumeVersion"] == 2


def test_locator_for_fragment_without_body():
    soup = BeautifulSoup("<div><p>a</p><p>b</p></div>", "html.parser")
    second = soup.find_all("p")[1]

    locator = element_locator(second, soup)
    assert locator == "@doc/div[1]/p[2]"
    assert resolve_element(soup, locator) is second
    assert resolve_element(soup, "@doc/div[1]/p[3]") is None
    assert resolve_element(soup, "@body/div[1]") is None
