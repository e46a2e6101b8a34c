"""Pure text logic shared by the tools."""

from .requirements import build_suggestions, extract_keywords, extract_requirements, keyword_overlap, ranked_keywords
from .resume_parser import (
    extract_sections,
    html_to_text,
    parse_resume_sections,
    split_passages,
    to_plain_text,
)
from .scoring import overall_fit_score, score_to_grade

__all__ = [
    "build_suggestions",
    "extract_keywords",
    "extract_requirements",
    "extract_sections",
    "html_to_text",
    "keyword_overlap",
    "overall_fit_score",
    "parse_resume_sections",
    "ranked_keywords",
    "score_to_grade",
    "split_passages",
    "to_plain_text",
]
