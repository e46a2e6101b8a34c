"""Pure domain logic for reading job descriptions.

All functions operate on content strings -- no file I/O.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Dict, Iterable, List, Optional, Set

from tailr_agent.core.embeddings import JobRequirements, KeywordRequirement

from .resume_parser import to_plain_text

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_STOP_WORDS: Set[str] = set(
    """
    the and for are but not you all can had her was one our out has have been will with this that
    from they were which their about would there what also into more other than then them these
    some such only over very just being through during before after above below between under
    again further once here when where both each most same should could does doing while must
    who whom your yours its per via etc any may might within across like new make makes
    work working looking seeking ability able including using strong excellent good great well
    team teams role position company join ideal candidate candidates required preferred minimum
    years year experience plus bonus responsibilities requirements qualifications skills knowledge
    understanding familiarity proficiency environment opportunity help build support
    """.split()
)

_MULTI_WORD_TERMS = re.compile(
    r"\b(?:machine learning|deep learning|data science|data engineering|project management|"
    r"product management|full stack|front end|back end|cloud computing|distributed systems|"
    r"continuous integration|continuous delivery|natural language processing|computer vision|"
    r"test driven development|object oriented|rest apis?|unit testing|system design)\b"
)

# Heading -> requirement category. Order matters: the first match wins.
_HEADINGS = [
    (re.compile(r"(preferred|nice[\s-]to[\s-]have|bonus|desired|pluses?|a plus)", re.I), "qualifications"),
    (re.compile(r"(responsibilit|what you('|’)ll do|what you will do|duties|day[\s-]to[\s-]day|the role)", re.I), "responsibilities"),
    (re.compile(r"(required|requirements?|must[\s-]have|qualifications?|what you('|’)ll bring|skills|who you are)", re.I), "skills"),
]
_BULLET = re.compile(r"^\s*(?:[-•*▪●]|\d+[.)])\s+(.+)$")

MAX_KEYWORDS = 20


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract_keywords(text: str) -> Set[str]:
    """Extract meaningful keywords from *text*, filtering stop words."""
    lowered = to_plain_text(text).lower()
    words = set(re.findall(r"\b[a-z][a-z\+\#\.]{1,}[a-z\+\#]\b|\b[a-z]\+\+|\bc#", lowered))
    words |= set(_MULTI_WORD_TERMS.findall(lowered))
    return {w.rstrip(".") for w in words} - _STOP_WORDS


def ranked_keywords(text: str, limit: int = MAX_KEYWORDS) -> List[str]:
    """Keywords of *text* ordered by frequency, then first appearance."""
    lowered = to_plain_text(text).lower()
    keywords = extract_keywords(lowered)
    counts: Counter = Counter()
    first_seen: Dict[str, int] = {}
    for keyword in keywords:
        hits = [m.start() for m in re.finditer(r"(?<![a-z])" + re.escape(keyword) + r"(?![a-z])", lowered)]
        counts[keyword] = len(hits)
        first_seen[keyword] = hits[0] if hits else len(lowered)
    return sorted(keywords, key=lambda k: (-counts[k], first_seen[k]))[:limit]


def extract_requirements(job_description: str) -> JobRequirements:
    """Extract structured requirements from a job description string.

    Bulleted lines are assigned to the category of the heading above them;
    bullets before any heading count as responsibilities. Education and
    years-of-experience statements are added to the qualifications.
    Keywords carry a priority: ``critical`` when they appear in a required
    skill, ``important`` when mentioned more than once, ``nice_to_have``
    otherwise.
    """
    text = to_plain_text(job_description)
    found: Dict[str, List[str]] = {"skills": [], "qualifications": [], "responsibilities": []}
    category: Optional[str] = None

    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line:
            continue
        bullet = _BULLET.match(line)
        if bullet:
            item = bullet.group(1).strip()
            found[category or "responsibilities"].append(item)
            continue
        heading = _heading_category(line)
        if heading:
            category = heading

    lowered = text.lower()
    edu_match = re.search(r"\b(?:bachelor|master|ph\.?d|degree|b\.s\.|m\.s\.|mba)\b[^.\n]*", lowered)
    if edu_match:
        _append_unique(found["qualifications"], edu_match.group().strip())

    exp_match = re.search(r"(\d+)\+?\s*years?\s*(?:of\s+)?(?:professional\s+)?experience", lowered)
    if exp_match:
        _append_unique(found["qualifications"], f"{exp_match.group(1)}+ years experience")

    required_text = " ".join(found["skills"]).lower()
    keyword_counts = Counter({k: lowered.count(k) for k in extract_keywords(text)})
    keywords = []
    for keyword in ranked_keywords(text):
        if keyword in required_text:
            priority = "critical"
        elif keyword_counts[keyword] > 1:
            priority = "important"
        else:
            priority = "nice_to_have"
        keywords.append(KeywordRequirement(text=keyword, priority=priority))

    return JobRequirements(
        skills=_dedupe(found["skills"]),
        qualifications=_dedupe(found["qualifications"]),
        responsibilities=_dedupe(found["responsibilities"]),
        keywords=keywords,
    )


def keyword_overlap(resume_content: str, job_description: str) -> Dict[str, List[str]]:
    """Keywords of the job description split by presence in the resume."""
    resume_lower = to_plain_text(resume_content).lower()
    matched: List[str] = []
    missing: List[str] = []
    for keyword in ranked_keywords(job_description):
        if re.search(r"(?<![a-z])" + re.escape(keyword) + r"(?![a-z])", resume_lower):
            matched.append(keyword)
        else:
            missing.append(keyword)
    return {"matched": matched, "missing": missing}


def build_suggestions(
    missing_keywords: Iterable[str],
    uncovered: Dict[str, List[str]],
    weak_items: Iterable[str] = (),
) -> List[Dict[str, str]]:
    """Actionable suggestions from keyword gaps and poorly covered requirements.

    *uncovered* maps a requirement category to its requirement texts.
    """
    suggestions: List[Dict[str, str]] = []

    tech_missing = sorted(kw for kw in missing_keywords if any(c in kw for c in ".+#") or len(kw) <= 10)[:10]
    if tech_missing:
        suggestions.append(
            {
                "section": "skills",
                "action": "add",
                "detail": f"Add missing keywords where truthful: {', '.join(tech_missing)}",
            }
        )

    for requirement in uncovered.get("skills", []):
        suggestions.append(
            {"section": "experience", "action": "add", "detail": f"Show evidence of required skill: {requirement}"}
        )
    for requirement in uncovered.get("responsibilities", []):
        suggestions.append(
            {"section": "experience", "action": "reframe", "detail": f"Describe work similar to: {requirement}"}
        )
    for requirement in uncovered.get("qualifications", []):
        suggestions.append(
            {"section": "education", "action": "verify", "detail": f"Make this qualification visible: {requirement}"}
        )

    for item in weak_items:
        preview = item if len(item) <= 80 else item[:77] + "..."
        suggestions.append(
            {"section": "experience", "action": "tighten", "detail": f"Relate to the role or trim: {preview}"}
        )

    return suggestions[:15]


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _heading_category(line: str) -> Optional[str]:
    # headings are short and usually end with a colon or stand alone
    candidate = line.rstrip(":").strip("#*= ")
    if len(candidate) > 60 or (not line.endswith(":") and len(candidate.split()) > 6):
        return None
    for pattern, category in _HEADINGS:
        if pattern.search(candidate):
            return category
    return None


def _append_unique(items: List[str], value: str) -> None:
    if value not in items:
        items.append(value)


def _dedupe(items: List[str]) -> List[str]:
    seen: Set[str] = set()
    result: List[str] = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result
