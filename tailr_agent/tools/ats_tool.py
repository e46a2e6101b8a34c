"""optimizeForATS: semantic fit analysis of the resume against the job description."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from tailr_agent.core.embeddings import ResumeSectionEmbedding
from tailr_agent.core.session import ContentType, ContextUpdate
from tailr_agent.domain.requirements import build_suggestions, extract_requirements, keyword_overlap
from tailr_agent.domain.resume_parser import parse_resume_sections
from tailr_agent.domain.scoring import RELEVANCE_THRESHOLD, overall_fit_score, score_to_grade

from .base import BaseTool, ToolContext, ToolResult, require_embeddings, require_session
from .definitions import ATS_FOCUS_SECTIONS, OPTIMIZE_FOR_ATS

logger = logging.getLogger(__name__)

_CATEGORY_BY_TYPE = {"skill": "skills", "qualification": "qualifications", "responsibility": "responsibilities"}


class OptimizeForATSTool(BaseTool):
    definition = OPTIMIZE_FOR_ATS

    async def execute(self, input: Dict[str, Any], context: ToolContext) -> ToolResult:
        session = require_session(context)
        documents = session.get_current_content(context.conversation_id)

        job_description = (input.get("jobDescription") or "").strip() or documents[ContentType.JOB_DESCRIPTION.value]
        if not job_description.strip():
            return ToolResult.fail("No job description provided and none stored for this conversation")
        resume = documents[ContentType.RESUME.value]
        if not resume.strip():
            return ToolResult.fail("No resume stored for this conversation")

        requirements = extract_requirements(job_description)
        if requirements.is_empty():
            return ToolResult.fail("Could not extract any requirements from the job description")

        focus = list(input.get("focusSections") or ATS_FOCUS_SECTIONS)
        sections = parse_resume_sections(resume)
        for name in ATS_FOCUS_SECTIONS:
            if name not in focus:
                setattr(sections, name, None if name == "summary" else [])
        if sections.is_empty():
            return ToolResult.fail(f"The resume has no content in the selected sections: {', '.join(focus)}")

        embeddings = require_embeddings(context)
        requirement_vectors = await embeddings.embed_job_requirements(requirements)
        resume_vectors = await embeddings.embed_resume_sections(sections)
        if not resume_vectors:
            return ToolResult.fail("None of the resume content could be embedded")

        threshold = float(context.setting("coverage_threshold", RELEVANCE_THRESHOLD))
        scorable = [r for r in requirement_vectors if r.type != "keyword"] or requirement_vectors

        requirement_coverage: Dict[str, float] = {}
        coverage_rows: List[Dict[str, Any]] = []
        uncovered: Dict[str, List[str]] = {"skills": [], "responsibilities": [], "qualifications": []}
        for req in scorable:
            best_score, best = self._best_match(embeddings.similarity, req.vector, resume_vectors)
            requirement_coverage[req.text] = max(requirement_coverage.get(req.text, 0.0), best_score)
            coverage_rows.append(
                {
                    "requirement": req.text,
                    "category": req.type,
                    "priority": req.priority,
                    "coverage": round(best_score, 3),
                    "bestMatch": {"section": best.section, "text": best.text} if best else None,
                }
            )
            category = _CATEGORY_BY_TYPE.get(req.type)
            if category and best_score < threshold:
                uncovered[category].append(req.text)

        resume_coverage: Dict[str, float] = {}
        for item in resume_vectors:
            relevance = max((embeddings.similarity(item.vector, r.vector) for r in scorable), default=0.0)
            resume_coverage[item.text] = max(resume_coverage.get(item.text, 0.0), relevance)

        score = overall_fit_score(requirements, requirement_coverage, resume_coverage, threshold)
        keywords = keyword_overlap(resume, job_description)
        weak_items = sorted(
            (i.text for i in resume_vectors if i.section == "experience" and resume_coverage[i.text] < threshold / 2),
            key=lambda text: resume_coverage[text],
        )[:3]

        analysis = {
            "fitScore": round(score, 3),
            "grade": score_to_grade(score),
            "requirementCoverage": coverage_rows,
            "resumeItems": [
                {"section": i.section, "text": i.text, "relevance": round(resume_coverage[i.text], 3)} for i in resume_vectors
            ],
            "matchedKeywords": keywords["matched"],
            "missingKeywords": keywords["missing"],
            "suggestions": build_suggestions(keywords["missing"], uncovered, weak_items),
            "focusSections": focus,
        }
        analysis["analysisVersion"] = self._store_analysis(session, context.conversation_id, analysis)
        logger.info("optimizeForATS fit score %.3f for conversation %s", score, context.conversation_id)
        return ToolResult(success=True, data=analysis)

    @staticmethod
    def _best_match(similarity, vector, candidates: List[ResumeSectionEmbedding]):
        best_score = 0.0
        best: Optional[ResumeSectionEmbedding] = None
        for candidate in candidates:
            score = similarity(vector, candidate.vector)
            if best is None or score > best_score:
                best_score, best = score, candidate
        return best_score, best

    @staticmethod
    def _store_analysis(session, conversation_id: str, analysis: Dict[str, Any]) -> int:
        summary = {
            "fitScore": analysis["fitScore"],
            "grade": analysis["grade"],
            "missingKeywords": analysis["missingKeywords"],
            "suggestions": [s["detail"] for s in analysis["suggestions"]],
        }
        version = session.get_context(conversation_id).analysis.version + 1
        session.update_content(
            conversation_id,
            ContextUpdate(type=ContentType.ANALYSIS, content=json.dumps(summary, ensure_ascii=False), version=version),
        )
        return version
