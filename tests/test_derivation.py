"""
Fan-out of the three derivation legs: concurrency, fail-fast join,
per-leg timeouts and output validation.
"""

import time

import pytest

from app.services.derivation import derive_artifacts
from app.services.errors import DerivationFailure
from app.services.llm import LLMError


class TestSuccessfulJoin:

    async def test_returns_all_three_artifacts(self, make_derivers, sample_embedding, sample_timeline):
        result = await derive_artifacts("I moved to Berlin in 2019.", make_derivers())

        assert result.timeline == sample_timeline
        assert result.embedding == sample_embedding
        assert result.title == "A New Start"

    async def test_every_leg_sees_the_raw_text(self, make_derivers, sample_embedding):
        seen = []

        def record(out):
            def _leg(text):
                seen.append(text)
                return out
            return _leg

        derivers = make_derivers(
            embedding=record(sample_embedding),
            timeline=record({"events": []}),
            title=record("t"),
        )
        await derive_artifacts("same text", derivers)

        assert seen == ["same text"] * 3

    async def test_legs_run_concurrently(self, make_derivers, sample_embedding):
        def slow(out):
            def _leg(text):
                time.sleep(0.3)
                return out
            return _leg

        derivers = make_derivers(
            embedding=slow(sample_embedding),
            timeline=slow({"events": []}),
            title=slow("Slow"),
        )
        started = time.monotonic()
        await derive_artifacts("text", derivers)

        assert time.monotonic() - started < 0.8

    @pytest.mark.parametrize("raw_title", ["", "   ", None])
    async def test_empty_title_is_not_a_failure(self, make_derivers, raw_title):
        result = await derive_artifacts("text", make_derivers(title=lambda t: raw_title))
        assert result.title is None

    async def test_title_is_trimmed(self, make_derivers):
        result = await derive_artifacts("text", make_derivers(title=lambda t: "  Berlin Years \n"))
        assert result.title == "Berlin Years"


class TestFailures:

    async def test_any_failing_leg_fails_the_join(self, make_derivers):
        def boom(text):
            raise RuntimeError("model overloaded")

        with pytest.raises(DerivationFailure) as exc:
            await derive_artifacts("text", make_derivers(timeline=boom))
        assert exc.value.leg == "timeline"

    async def test_llm_error_is_a_derivation_failure(self, make_derivers):
        def no_key(text):
            raise LLMError("OPENAI_API_KEY is not set")

        with pytest.raises(DerivationFailure) as exc:
            await derive_artifacts("text", make_derivers(embedding=no_key))
        assert exc.value.leg == "embedding"

    async def test_first_failure_does_not_wait_for_slow_legs(self, make_derivers, sample_embedding):
        def slow_embedding(text):
            time.sleep(1.0)
            return sample_embedding

        def bad_title(text):
            raise ValueError("nope")

        derivers = make_derivers(embedding=slow_embedding, title=bad_title, leg_timeout=5.0)
        started = time.monotonic()
        with pytest.raises(DerivationFailure) as exc:
            await derive_artifacts("text", derivers)

        assert exc.value.leg == "title"
        assert time.monotonic() - started < 0.8

    async def test_leg_timeout(self, make_derivers, sample_embedding):
        def hangs(text):
            time.sleep(0.5)
            return sample_embedding

        with pytest.raises(DerivationFailure) as exc:
            await derive_artifacts("text", make_derivers(embedding=hangs, leg_timeout=0.05))
        assert exc.value.leg == "embedding"
        assert exc.value.reason == "timed out"

    async def test_wrong_embedding_dimension(self, make_derivers):
        with pytest.raises(DerivationFailure) as exc:
            await derive_artifacts("text", make_derivers(embedding=lambda t: [0.1, 0.2]))
        assert exc.value.leg == "embedding"

    async def test_non_numeric_embedding(self, make_derivers, sample_embedding):
        vec = list(sample_embedding)
        vec[3] = "0.5"
        with pytest.raises(DerivationFailure):
            await derive_artifacts("text", make_derivers(embedding=lambda t: vec))

    async def test_non_string_title(self, make_derivers):
        with pytest.raises(DerivationFailure) as exc:
            await derive_artifacts("text", make_derivers(title=lambda t: {"title": "x"}))
        assert exc.value.leg == "title"
