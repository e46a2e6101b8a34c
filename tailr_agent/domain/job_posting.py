"""Load a job description from a public job board posting (static HTML only)."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from bs4 import BeautifulSoup

from tailr_agent.core.errors import JobPostingError

from .resume_parser import html_to_text

logger = logging.getLogger(__name__)

_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
_HEADERS = {
    "User-Agent": _USER_AGENT,
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}
_ASHBY_APP_DATA = re.compile(r"window\.__appData\s*=\s*({.*?});", re.DOTALL)


@dataclass(frozen=True)
class JobBoard:
    """Where a board keeps the description and which lines to drop from it."""

    name: str
    host: str
    selector: Optional[str]
    noise: Tuple[str, ...]
    remove: Tuple[str, ...] = ()


JOB_BOARDS: Sequence[JobBoard] = (
    JobBoard(
        name="greenhouse",
        host="greenhouse.io",
        selector=".job__description.body",
        remove=(".job__pay-ranges",),
        noise=("base pay", "compensation", "salary range", "zone", "benefits", "click here to learn more"),
    ),
    JobBoard(
        name="lever",
        host="lever.co",
        selector=".content",
        remove=('[data-qa="btn-apply-bottom"]',),
        noise=("compensation", "salary range", "$", "benefits", "how to apply", "about us", "equal opportunity",
               "diversity"),
    ),
    JobBoard(
        name="ashby",
        host="jobs.ashbyhq.com",
        selector=None,
        noise=("compensation range", "salary range", "$", "benefits", "equal opportunity", "diversity",
               "privacy policy", "fair chance", "reasonable accommodations"),
    ),
    JobBoard(
        name="jobvite",
        host="jobs.jobvite.com",
        selector=".jv-job-detail-description",
        noise=("compensation", "salary range", "$", "benefits", "equal opportunity", "diversity", "privacy policy",
               "fair chance", "reasonable accommodations", "why work at", "professional development"),
    ),
)


def board_for_url(url: str) -> JobBoard:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise JobPostingError(f"Only http/https job URLs are supported: {url}")
    host = (parsed.hostname or "").lower()
    for board in JOB_BOARDS:
        if host == board.host or host.endswith("." + board.host):
            return board
    raise JobPostingError(f"Unsupported job board: {host or url}")


def fetch_html(url: str, timeout_seconds: float = 15, max_bytes: int = 2_000_000) -> str:
    req = Request(url, headers=_HEADERS)
    try:
        with urlopen(req, timeout=timeout_seconds) as resp:
            content_type = (resp.headers.get("Content-Type") or "").lower()
            raw = resp.read(max_bytes + 1)
    except OSError as e:
        raise JobPostingError(f"Could not fetch {url}: {e}") from e

    if len(raw) > max_bytes:
        raise JobPostingError(f"Job posting too large (> {max_bytes} bytes): {url}")
    charset_match = re.search(r"charset=([^\s;]+)", content_type)
    charset = charset_match.group(1) if charset_match else "utf-8"
    try:
        return raw.decode(charset, errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def _drop_noise(text: str, noise: Sequence[str]) -> str:
    lines = [line.strip() for line in text.splitlines()]
    kept = [line for line in lines if line and not any(word in line.lower() for word in noise)]
    return "\n".join(kept).strip()


def _ashby_description(soup: BeautifulSoup) -> Optional[str]:
    for script in soup.find_all("script"):
        source = script.string or ""
        match = _ASHBY_APP_DATA.search(source)
        if not match:
            continue
        try:
            posting = json.loads(match.group(1)).get("posting") or {}
        except ValueError:
            logger.warning("Could not parse window.__appData from Ashby posting")
            return None
        description = posting.get("descriptionPlainText") or posting.get("descriptionHtml")
        if description and "<" in description:
            return html_to_text(description)
        return description
    return None


def parse_job_posting(html: str, board: JobBoard) -> str:
    """Extract the plain-text description from a board's posting page."""
    soup = BeautifulSoup(html, "html.parser")
    if board.selector is None:
        text = _ashby_description(soup)
    else:
        for selector in board.remove:
            for tag in soup.select(selector):
                tag.decompose()
        container = soup.select_one(board.selector)
        text = html_to_text(str(container)) if container is not None else None

    if not text:
        raise JobPostingError(f"No job description found on the {board.name} posting")
    description = _drop_noise(text, board.noise)
    if not description:
        raise JobPostingError(f"No job description found on the {board.name} posting")
    return description


def extract_job_description(url: str, fetch: Callable[[str], str] = fetch_html) -> str:
    """Fetch *url* and return its job description as plain text."""
    board = board_for_url(url)
    description = parse_job_posting(fetch(url), board)
    logger.info("Loaded %d characters of job description from %s", len(description), board.name)
    return description
