"""Pure domain logic for resume text: HTML flattening, sections and passages.

All functions operate on strings -- no file I/O.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from bs4 import BeautifulSoup
from langchain_text_splitters import RecursiveCharacterTextSplitter

from tailr_agent.core.embeddings import ExperienceItem, ResumeSections

# ---------------------------------------------------------------------------
# Section extraction
# ---------------------------------------------------------------------------

#: Regex patterns mapping raw header text to canonical section names.
SECTION_PATTERNS: List[tuple] = [
    (r"(summary|objective|profile|about(\s+me)?|professional\s+summary)", "summary"),
    (r"((work|professional)\s+)?(experience|work\s*history|employment(\s+history)?)", "experience"),
    (r"(education|academic\s+background)", "education"),
    (r"((technical|core)\s+)?(skills|competencies)", "skills"),
    (r"(projects|portfolio|selected\s+projects)", "projects"),
    (r"(certifications?|licenses?(\s+(&|and)\s+certifications?)?)", "certifications"),
    (r"(awards?|honors?|achievements?)", "awards"),
    (r"(publications?|papers?)", "publications"),
    (r"(languages?)", "languages"),
    (r"(references?)", "references"),
]

_HEADER_DECORATION = re.compile(r"^[#=*\-\s]+|[:#=*\-\s]+$")
_BULLET = re.compile(r"^\s*(?:[-•*▪●]|\d+[.)])\s+")
_DURATION = re.compile(
    r"((?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+)?(19|20)\d{2}"
    r"\s*(?:-|–|—|to)\s*"
    r"(((?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+)?(19|20)\d{2}|present|current|now)",
    re.IGNORECASE,
)
_TECH_LINE = re.compile(r"^(?:technologies|tech(?:nology)?\s*stack|tools|stack)\s*:\s*(.+)$", re.IGNORECASE)
_BLOCK_TAGS = ["p", "div", "li", "h1", "h2", "h3", "h4", "h5", "h6", "br", "tr", "section", "header", "ul", "ol"]
_PASSAGE_SEPARATORS = [". ", "! ", "? ", "; ", " ", ""]


def looks_like_html(content: str) -> bool:
    return bool(re.search(r"<\s*(html|body|div|p|section|ul|li|h[1-6]|span)\b", content, re.IGNORECASE))


def html_to_text(html: str) -> str:
    """Flatten HTML into text with one line per block element."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    for tag in soup.find_all(_BLOCK_TAGS):
        tag.insert_before("\n")
        tag.insert_after("\n")
    text = soup.get_text()
    lines = [" ".join(line.split()) for line in text.splitlines()]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


def to_plain_text(content: str) -> str:
    return html_to_text(content) if looks_like_html(content) else content


def match_section_header(line: str) -> Optional[str]:
    """Return the canonical section name if *line* is a section heading."""
    stripped = _HEADER_DECORATION.sub("", line.strip())
    if not stripped or len(stripped) > 40:
        return None
    for pattern, section_name in SECTION_PATTERNS:
        if re.fullmatch(pattern, stripped, re.IGNORECASE):
            return section_name
    return None


def extract_sections(content: str) -> Dict[str, str]:
    """Extract common resume sections from plain-text or HTML content.

    Returns a dict mapping canonical section names (e.g. ``"experience"``)
    to the text found under that heading.  Content before the first
    recognised heading is stored under ``"header"``.
    """
    sections: Dict[str, str] = {}
    current_section = "header"
    current_content: List[str] = []

    for line in to_plain_text(content).split("\n"):
        section_name = match_section_header(line)
        if section_name is None:
            current_content.append(line)
            continue
        if current_content and "\n".join(current_content).strip():
            sections[current_section] = _join(sections.get(current_section), current_content)
        current_section = section_name
        current_content = []

    if current_content and "\n".join(current_content).strip():
        sections[current_section] = _join(sections.get(current_section), current_content)

    return sections


def _join(existing: Optional[str], lines: List[str]) -> str:
    text = "\n".join(lines).strip()
    return f"{existing}\n\n{text}" if existing else text


# ---------------------------------------------------------------------------
# Passages
# ---------------------------------------------------------------------------


def split_passages(text: str, max_chars: int = 500) -> List[str]:
    """Split *text* into passages of at most *max_chars* for semantic search.

    Paragraphs are kept whole when they fit. Longer ones go through a
    recursive splitter that prefers sentence ends, then spaces, and finally
    hard-wraps a single over-long word.
    """
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=max_chars,
        chunk_overlap=0,
        separators=_PASSAGE_SEPARATORS,
        keep_separator="end",
    )
    passages: List[str] = []
    for paragraph in re.split(r"\n\s*\n", to_plain_text(text)):
        paragraph = " ".join(paragraph.split())
        if not paragraph:
            continue
        if len(paragraph) <= max_chars:
            passages.append(paragraph)
        else:
            passages.extend(splitter.split_text(paragraph))
    return passages


# ---------------------------------------------------------------------------
# Structured sections for embedding
# ---------------------------------------------------------------------------


def split_entries(text: str) -> List[str]:
    """Split a section body into entries: bullets, then lines."""
    entries: List[str] = []
    for line in text.split("\n"):
        line = _BULLET.sub("", line).strip()
        if line:
            entries.append(line)
    return entries


def split_skills(text: str) -> List[str]:
    skills: List[str] = []
    for entry in split_entries(text):
        # "Languages: Python, Go" -> "Python", "Go"
        if ":" in entry:
            entry = entry.split(":", 1)[1]
        skills.extend(s.strip() for s in re.split(r"[,;|•]", entry) if s.strip())
    return skills


def parse_experience(text: str) -> List[ExperienceItem]:
    """Parse the experience section into one item per position.

    A position starts at a line carrying a date range; bullets and lines that
    follow belong to it. Without any date ranges each paragraph is a position.
    """
    blocks: List[List[str]] = []
    lines = [line.strip() for line in text.split("\n")]
    if any(_DURATION.search(line) for line in lines):
        for line in lines:
            if not line:
                continue
            if _DURATION.search(line) and not _BULLET.match(line):
                # a title line directly above the dates belongs to the new position
                title = []
                if blocks and not _BULLET.match(blocks[-1][-1]) and not _DURATION.search(blocks[-1][-1]):
                    title = [blocks[-1].pop()]
                    if not blocks[-1]:
                        blocks.pop()
                blocks.append(title + [line])
            elif blocks:
                blocks[-1].append(line)
            else:
                blocks.append([line])
    else:
        blocks = [p.split("\n") for p in re.split(r"\n\s*\n", text) if p.strip()]

    items: List[ExperienceItem] = []
    for block in blocks:
        block = [line.strip() for line in block if line.strip()]
        if block:
            items.append(_experience_item(block))
    return items


def _experience_item(lines: List[str]) -> ExperienceItem:
    duration = None
    role = None
    company = None
    technologies: List[str] = []
    body: List[str] = []

    for line in lines:
        tech = _TECH_LINE.match(_BULLET.sub("", line))
        if tech:
            technologies.extend(t.strip() for t in re.split(r"[,;|]", tech.group(1)) if t.strip())
            continue
        match = _DURATION.search(line)
        if match and duration is None:
            duration = match.group(0)
            head = (line[: match.start()] + line[match.end() :]).strip(" |,-–—()")
            if head and role is None:
                role, company = _split_role_company(head)
            continue
        if role is None and not _BULLET.match(line):
            role, company = _split_role_company(line)
            continue
        body.append(_BULLET.sub("", line))

    headline = " ".join(p for p in (role, "at " + company if company else None) if p)
    text = "\n".join(([headline] if headline else []) + body).strip() or "\n".join(lines)
    return ExperienceItem(text=text, company=company, role=role, duration=duration, technologies=technologies)


def _split_role_company(line: str):
    for separator in (" at ", " @ ", " | ", " - ", " – ", " — ", ", "):
        if separator in line:
            role, company = line.split(separator, 1)
            return role.strip() or None, company.strip() or None
    return line.strip() or None, None


def parse_resume_sections(content: str) -> ResumeSections:
    """Build the structured view of a resume used for embedding."""
    sections = extract_sections(content)
    summary = sections.get("summary") or None
    return ResumeSections(
        summary=" ".join(summary.split()) if summary else None,
        experience=parse_experience(sections.get("experience", "")),
        skills=split_skills(sections.get("skills", "")),
        education=split_entries(sections.get("education", "")),
        projects=split_entries(sections.get("projects", "")),
    )
