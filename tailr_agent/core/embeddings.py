"""Sentence embeddings for semantic search and fit scoring."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from .cache import VectorCache
from .errors import BatchPartialFailure, EmbeddingError, EmbeddingInitFailure

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "all-MiniLM-L6-v2"
DEFAULT_BATCH_SIZE = 32

KEYWORD_PRIORITIES = ("critical", "important", "nice_to_have")


@dataclass
class EmbeddingResult:
    vector: List[float]
    text: str
    metadata: Optional[Dict[str, Any]] = None
    index: int = 0


@dataclass
class BatchEmbeddingResult:
    """Successful embeddings in input order plus the joined per-item errors, if any."""

    embeddings: List[EmbeddingResult] = field(default_factory=list)
    error: Optional[str] = None

    def raise_for_errors(self) -> None:
        if self.error:
            raise BatchPartialFailure(self.error, self.embeddings)


@dataclass
class KeywordRequirement:
    text: str
    priority: str = "important"  # critical | important | nice_to_have


@dataclass
class JobRequirements:
    skills: List[str] = field(default_factory=list)
    qualifications: List[str] = field(default_factory=list)
    responsibilities: List[str] = field(default_factory=list)
    keywords: List[KeywordRequirement] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.skills or self.qualifications or self.responsibilities or self.keywords)


@dataclass
class JobRequirementEmbedding:
    text: str
    vector: List[float]
    type: str  # skill | qualification | responsibility | keyword
    priority: Optional[str] = None


@dataclass
class ExperienceItem:
    text: str
    company: Optional[str] = None
    role: Optional[str] = None
    duration: Optional[str] = None
    technologies: List[str] = field(default_factory=list)

    def metadata(self) -> Dict[str, Any]:
        return {
            "company": self.company,
            "role": self.role,
            "duration": self.duration,
            "technologies": list(self.technologies),
        }


@dataclass
class ResumeSections:
    summary: Optional[str] = None
    experience: List[ExperienceItem] = field(default_factory=list)
    skills: List[str] = field(default_factory=list)
    education: List[str] = field(default_factory=list)
    projects: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.summary or self.experience or self.skills or self.education or self.projects)


@dataclass
class ResumeSectionEmbedding:
    text: str
    vector: List[float]
    section: str  # summary | experience | skills | education | projects
    metadata: Optional[Dict[str, Any]] = None


def _load_sentence_transformer(model_name: str):
    # imported lazily: loading torch is slow and tests inject a fake encoder
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_name)


class EmbeddingProvider:
    """
    Produces embedding vectors through a sentence-transformers model, backed by
    a shared :class:`VectorCache`.

    The model is loaded once on first use. Encoding is CPU bound and runs in a
    worker thread so the event loop stays responsive.
    """

    def __init__(
        self,
        cache: VectorCache,
        model_name: str = DEFAULT_MODEL_NAME,
        batch_size: int = DEFAULT_BATCH_SIZE,
        model_factory: Optional[Callable[[str], Any]] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.cache = cache
        self.model_name = model_name
        self.batch_size = batch_size
        self._model_factory = model_factory or _load_sentence_transformer
        self._model: Any = None
        self._init_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._model is not None

    async def initialize(self) -> None:
        """Load the model. Safe to call repeatedly and concurrently."""
        if self._model is not None:
            return
        async with self._init_lock:
            if self._model is not None:
                return
            try:
                model = await asyncio.to_thread(self._model_factory, self.model_name)
            except Exception as exc:
                logger.error("Failed to initialize embedding model %s: %s", self.model_name, exc)
                raise EmbeddingInitFailure(f"Failed to initialize embedding model '{self.model_name}': {exc}") from exc
            self._model = model
            logger.info("Embedding model %s initialized", self.model_name)

    async def embed(self, text: str, metadata: Optional[Dict[str, Any]] = None) -> EmbeddingResult:
        """Embed one text, serving repeated texts from the cache."""
        await self.initialize()
        if not isinstance(text, str):
            raise EmbeddingError(f"Expected text to embed, got {type(text).__name__}")

        cached = self.cache.get(text)
        if cached is not None:
            return EmbeddingResult(vector=cached, text=text, metadata=metadata)

        try:
            raw = await asyncio.to_thread(self._model.encode, text, normalize_embeddings=True)
            vector = np.asarray(raw, dtype=float).reshape(-1).tolist()
        except Exception as exc:
            raise EmbeddingError(f"Failed to generate embedding: {exc}") from exc

        self.cache.set(text, vector)
        return EmbeddingResult(vector=vector, text=text, metadata=metadata)

    async def embed_batch(
        self,
        texts: Sequence[str],
        metadata: Optional[Sequence[Optional[Dict[str, Any]]]] = None,
    ) -> BatchEmbeddingResult:
        """
        Embed many texts in chunks of ``batch_size`` concurrent requests.

        A failing item never cancels its siblings. Its error is recorded and the
        remaining embeddings are returned; each result carries the index of the
        text it came from.
        """
        await self.initialize()

        results: List[EmbeddingResult] = []
        errors: List[str] = []

        for start in range(0, len(texts), self.batch_size):
            chunk = texts[start : start + self.batch_size]
            outcomes = await asyncio.gather(
                *(
                    self.embed(text, metadata[start + offset] if metadata and start + offset < len(metadata) else None)
                    for offset, text in enumerate(chunk)
                ),
                return_exceptions=True,
            )
            for offset, outcome in enumerate(outcomes):
                index = start + offset
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                if isinstance(outcome, BaseException):
                    errors.append(f"Failed to generate embedding for text at index {index}: {outcome}")
                    continue
                outcome.index = index
                results.append(outcome)

        if errors:
            logger.warning("Batch embedding finished with %d failure(s)", len(errors))
        return BatchEmbeddingResult(embeddings=results, error="; ".join(errors) if errors else None)

    async def embed_job_requirements(self, requirements: JobRequirements) -> List[JobRequirementEmbedding]:
        """Embed every requirement, tagged with its category and keyword priority."""
        embedded: List[JobRequirementEmbedding] = []

        for category, items in (
            ("skill", requirements.skills),
            ("qualification", requirements.qualifications),
            ("responsibility", requirements.responsibilities),
        ):
            if not items:
                continue
            batch = await self.embed_batch(list(items))
            self._warn_partial(batch, category)
            embedded.extend(JobRequirementEmbedding(text=r.text, vector=r.vector, type=category) for r in batch.embeddings)

        if requirements.keywords:
            batch = await self.embed_batch([k.text for k in requirements.keywords])
            self._warn_partial(batch, "keyword")
            for result in batch.embeddings:
                embedded.append(
                    JobRequirementEmbedding(
                        text=result.text,
                        vector=result.vector,
                        type="keyword",
                        priority=requirements.keywords[result.index].priority,
                    )
                )

        return embedded

    async def embed_resume_sections(self, sections: ResumeSections) -> List[ResumeSectionEmbedding]:
        """Embed resume content, keeping experience metadata attached to its entry."""
        embedded: List[ResumeSectionEmbedding] = []

        if sections.summary:
            result = await self.embed(sections.summary)
            embedded.append(ResumeSectionEmbedding(text=result.text, vector=result.vector, section="summary"))

        if sections.experience:
            batch = await self.embed_batch(
                [item.text for item in sections.experience],
                [item.metadata() for item in sections.experience],
            )
            self._warn_partial(batch, "experience")
            for result in batch.embeddings:
                embedded.append(
                    ResumeSectionEmbedding(
                        text=result.text,
                        vector=result.vector,
                        section="experience",
                        metadata=sections.experience[result.index].metadata(),
                    )
                )

        for section, items in (
            ("skills", sections.skills),
            ("education", sections.education),
            ("projects", sections.projects),
        ):
            if not items:
                continue
            batch = await self.embed_batch(list(items))
            self._warn_partial(batch, section)
            embedded.extend(ResumeSectionEmbedding(text=r.text, vector=r.vector, section=section) for r in batch.embeddings)

        return embedded

    @staticmethod
    def similarity(a: Sequence[float], b: Sequence[float]) -> float:
        """Cosine similarity in [-1, 1]; 0.0 when either vector has zero magnitude."""
        va = np.asarray(a, dtype=float)
        vb = np.asarray(b, dtype=float)
        if va.shape != vb.shape:
            raise ValueError(f"Vector length mismatch: {va.size} != {vb.size}")

        denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
        if denom == 0.0:
            return 0.0
        return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))

    @staticmethod
    def _warn_partial(batch: BatchEmbeddingResult, label: str) -> None:
        if batch.error:
            logger.warning("Some %s items could not be embedded: %s", label, batch.error)
