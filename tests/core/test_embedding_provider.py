"""Tests for EmbeddingProvider: caching, batching, tagging and similarity."""

from __future__ import annotations

import asyncio

import pytest

from tailr_agent.core.cache import VectorCache
from tailr_agent.core.embeddings import (
    EmbeddingProvider,
    ExperienceItem,
    JobRequirements,
    KeywordRequirement,
    ResumeSections,
)
from tailr_agent.core.errors import BatchPartialFailure, EmbeddingError, EmbeddingInitFailure


@pytest.mark.asyncio
async def test_embed_returns_vector_and_caches_it(embeddings, fake_encoder):
    first = await embeddings.embed("python developer", metadata={"source": "resume"})
    second = await embeddings.embed("python   developer")

    assert first.text == "python developer"
    assert first.metadata == {"source": "resume"}
    assert len(first.vector) == fake_encoder.dim
    assert second.vector == first.vector
    assert fake_encoder.calls == ["python developer"]
    assert embeddings.cache.get_stats()["hits"] == 1


@pytest.mark.asyncio
async def test_expired_cache_entry_is_recomputed(fake_encoder, fake_clock):
    provider = EmbeddingProvider(
        cache=VectorCache(ttl_seconds=60, clock=fake_clock),
        model_factory=lambda name: fake_encoder,
    )
    await provider.embed("kubernetes")
    fake_clock.advance(61)
    await provider.embed("kubernetes")

    assert fake_encoder.calls == ["kubernetes", "kubernetes"]


@pytest.mark.asyncio
async def test_embed_wraps_encoder_failure(embeddings):
    with pytest.raises(EmbeddingError, match="Failed to generate embedding"):
        await embeddings.embed("please FAIL")


@pytest.mark.asyncio
async def test_embed_rejects_non_text(embeddings):
    with pytest.raises(EmbeddingError):
        await embeddings.embed(None)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_batch_keeps_successes_and_reports_failed_indices(embeddings):
    texts = ["alpha", "beta", "FAIL one", "gamma", "delta", "FAIL two", "epsilon"]

    batch = await embeddings.embed_batch(texts)

    assert [r.text for r in batch.embeddings] == ["alpha", "beta", "gamma", "delta", "epsilon"]
    assert [r.index for r in batch.embeddings] == [0, 1, 3, 4, 6]
    assert "text at index 2" in batch.error
    assert "text at index 5" in batch.error
    assert batch.error.count("; ") == 1

    with pytest.raises(BatchPartialFailure) as exc_info:
        batch.raise_for_errors()
    assert len(exc_info.value.embeddings) == 5


@pytest.mark.asyncio
async def test_batch_spans_multiple_chunks(fake_encoder):
    provider = EmbeddingProvider(cache=VectorCache(), batch_size=2, model_factory=lambda name: fake_encoder)

    batch = await provider.embed_batch(["a1", "b2", "c3", "d4", "e5"], metadata=[{"n": i} for i in range(5)])

    assert batch.error is None
    assert [r.index for r in batch.embeddings] == [0, 1, 2, 3, 4]
    assert [r.metadata for r in batch.embeddings] == [{"n": i} for i in range(5)]


@pytest.mark.asyncio
async def test_initialize_loads_model_once_under_concurrency(fake_encoder):
    loads = []

    def factory(name):
        loads.append(name)
        return fake_encoder

    provider = EmbeddingProvider(cache=VectorCache(), model_name="test-model", model_factory=factory)
    await asyncio.gather(*(provider.initialize() for _ in range(5)))
    await provider.embed("x")

    assert loads == ["test-model"]
    assert provider.is_initialized


@pytest.mark.asyncio
async def test_initialize_failure_is_reported_and_retryable(fake_encoder):
    attempts = []

    def factory(name):
        attempts.append(name)
        if len(attempts) == 1:
            raise OSError("model download failed")
        return fake_encoder

    provider = EmbeddingProvider(cache=VectorCache(), model_factory=factory)

    with pytest.raises(EmbeddingInitFailure, match="model download failed"):
        await provider.embed("x")
    assert not provider.is_initialized

    result = await provider.embed("x")
    assert result.vector
    assert len(attempts) == 2


def test_similarity_properties():
    a = [1.0, 2.0, 3.0]
    b = [3.0, -1.0, 0.5]

    assert EmbeddingProvider.similarity(a, a) == pytest.approx(1.0)
    assert EmbeddingProvider.similarity(a, b) == pytest.approx(EmbeddingProvider.similarity(b, a))
    assert EmbeddingProvider.similarity(a, [-x for x in a]) == pytest.approx(-1.0)
    assert EmbeddingProvider.similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert -1.0 <= EmbeddingProvider.similarity(a, b) <= 1.0


def test_similarity_zero_vector_is_zero():
    assert EmbeddingProvider.similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


def test_similarity_length_mismatch_raises():
    with pytest.raises(ValueError):
        EmbeddingProvider.similarity([1.0, 2.0], [1.0, 2.0, 3.0])


@pytest.mark.asyncio
async def test_job_requirements_are_tagged_by_category_and_priority(embeddings):
    requirements = JobRequirements(
        skills=["Python", "Go"],
        qualifications=["BSc in Computer Science"],
        responsibilities=["Design APIs"],
        keywords=[
            KeywordRequirement("python", "critical"),
            KeywordRequirement("FAIL keyword", "important"),
            KeywordRequirement("kafka", "nice_to_have"),
        ],
    )

    embedded = await embeddings.embed_job_requirements(requirements)

    by_type = {}
    for item in embedded:
        by_type.setdefault(item.type, []).append(item)
    assert [e.text for e in by_type["skill"]] == ["Python", "Go"]
    assert [e.text for e in by_type["qualification"]] == ["BSc in Computer Science"]
    assert [e.text for e in by_type["responsibility"]] == ["Design APIs"]
    assert [(e.text, e.priority) for e in by_type["keyword"]] == [("python", "critical"), ("kafka", "nice_to_have")]
    assert all(e.priority is None for e in by_type["skill"])


@pytest.mark.asyncio
async def test_resume_sections_keep_experience_metadata(embeddings):
    sections = ResumeSections(
        summary="Backend engineer",
        experience=[
            ExperienceItem("Built FAIL pipeline", company="Acme", role="Engineer"),
            ExperienceItem("Scaled payments", company="Globex", role="Senior Engineer", duration="2020 - 2023"),
        ],
        skills=["Python", "SQL"],
        education=["BSc Physics"],
    )

    embedded = await embeddings.embed_resume_sections(sections)

    sections_seen = [e.section for e in embedded]
    assert sections_seen == ["summary", "experience", "skills", "skills", "education"]
    experience = [e for e in embedded if e.section == "experience"]
    assert experience[0].text == "Scaled payments"
    assert experience[0].metadata["company"] == "Globex"
    assert experience[0].metadata["duration"] == "2020 - 2023"
