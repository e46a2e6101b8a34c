"""generateResumeSection: gather template, current text and target keywords for one section."""

from __future__ import annotations

from typing import Any, Dict

from tailr_agent.core.session import ContentType
from tailr_agent.domain.requirements import extract_requirements
from tailr_agent.domain.resume_parser import extract_sections

from .base import BaseTool, ToolContext, ToolResult
from .definitions import GENERATE_RESUME_SECTION

SECTION_TEMPLATES: Dict[str, Dict[str, str]] = {
    "summary": {
        "title": "Professional Summary",
        "description": "Two to four sentences positioning the candidate for the target role",
        "guidance": "Lead with the role and years of experience, name the strongest matching skills, end with a concrete result",
    },
    "experience": {
        "title": "Experience",
        "description": "Positions in reverse chronological order with achievement bullets",
        "guidance": "Start bullets with action verbs, quantify impact, mirror the job's wording where it is truthful",
    },
    "skills": {
        "title": "Skills",
        "description": "Grouped list of technical and domain skills",
        "guidance": "Put skills the job asks for first and use the job's exact terms for ATS matching",
    },
    "education": {
        "title": "Education",
        "description": "Degrees, institutions and graduation years",
        "guidance": "Include relevant coursework or honors only when they support the target role",
    },
    "projects": {
        "title": "Projects",
        "description": "Selected projects that demonstrate relevant skills",
        "guidance": "Name the problem, the stack used and the outcome for each project",
    },
    "certifications": {
        "title": "Certifications",
        "description": "Professional certifications and licenses",
        "guidance": "List the issuing body and year; put certifications the job mentions first",
    },
}


class GenerateResumeSectionTool(BaseTool):
    definition = GENERATE_RESUME_SECTION

    async def execute(self, input: Dict[str, Any], context: ToolContext) -> ToolResult:
        section_type = input["sectionType"]
        template = SECTION_TEMPLATES.get(section_type)
        if template is None:
            return ToolResult.fail(f"Unknown section type: {section_type}")

        current = ""
        job_keywords = []
        if context.session is not None:
            documents = context.session.get_current_content(context.conversation_id)
            resume = documents[ContentType.RESUME.value]
            if resume:
                current = extract_sections(resume).get(section_type, "")
            job_description = documents[ContentType.JOB_DESCRIPTION.value]
            if job_description:
                current_lower = current.lower()
                job_keywords = [
                    {"keyword": k.text, "priority": k.priority, "inSection": k.text in current_lower}
                    for k in extract_requirements(job_description).keywords
                ]

        return ToolResult.ok(
            sectionType=section_type,
            template=template,
            currentContent=current,
            jobKeywords=job_keywords,
            contextProvided=input.get("context", ""),
            message=f"Generated template for {template['title']} section",
        )
