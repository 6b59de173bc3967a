"""
Tests for recruit_match.ml.embeddings.embedding_model — EmbeddingProvider.
"""

import asyncio
import threading

import numpy as np
import pytest

from recruit_match.core.exceptions import EmbeddingFailedError, ModelUnavailableError
from recruit_match.ml.embeddings.embedding_model import EmbeddingModel

from conftest import FAKE_DIMENSION, FAKE_MODEL_NAME, FakeSentenceModel


class TestEmbeddingModel:
    def test_encode_returns_float32_vector(self, fake_model):
        model = EmbeddingModel(fake_model, FAKE_MODEL_NAME, FAKE_DIMENSION)
        vector = model.encode("Senior React developer")
        assert vector.dtype == np.float32
        assert vector.shape == (FAKE_DIMENSION,)
        assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-6)

    def test_dimension_mismatch_raises(self, fake_model):
        model = EmbeddingModel(fake_model, FAKE_MODEL_NAME, FAKE_DIMENSION + 1)
        with pytest.raises(ValueError):
            model.encode("React")


class TestEmbeddingProviderAcquire:
    def test_nothing_loaded_on_construction(self, provider):
        assert provider.is_ready is False
        assert provider.load_count == 0

    @pytest.mark.asyncio
    async def test_concurrent_acquire_loads_once(self, provider):
        models = await asyncio.gather(*(provider.acquire() for _ in range(8)))
        assert all(m is models[0] for m in models)
        assert provider.load_count == 1
        assert provider.is_ready is True

    @pytest.mark.asyncio
    async def test_later_acquire_reuses_model(self, provider):
        first = await provider.acquire()
        second = await provider.acquire()
        assert first is second
        assert provider.load_count == 1

    @pytest.mark.asyncio
    async def test_dimension_comes_from_model(self, provider):
        await provider.init()
        assert provider.dimension == FAKE_DIMENSION

    @pytest.mark.asyncio
    async def test_failed_load_raises_model_unavailable(self, failing_provider):
        with pytest.raises(ModelUnavailableError) as exc_info:
            await failing_provider.acquire()
        assert exc_info.value.model_name == FAKE_MODEL_NAME
        assert failing_provider.is_ready is False

    @pytest.mark.asyncio
    async def test_failed_load_is_retried(self, make_provider):
        attempts = []

        def flaky_loader(name, device):
            attempts.append(name)
            if len(attempts) == 1:
                raise OSError("network unreachable")
            return FakeSentenceModel()

        provider = make_provider(flaky_loader)
        with pytest.raises(ModelUnavailableError):
            await provider.acquire()

        model = await provider.acquire()
        assert model.dimension == FAKE_DIMENSION
        assert provider.load_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_failure(self, make_provider):
        calls = []

        def failing_loader(name, device):
            calls.append(name)
            raise RuntimeError("boom")

        provider = make_provider(failing_loader)
        results = await asyncio.gather(
            *(provider.acquire() for _ in range(4)), return_exceptions=True
        )
        assert all(isinstance(r, ModelUnavailableError) for r in results)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_abort_load(self, make_provider):
        gate = threading.Event()

        def slow_loader(name, device):
            gate.wait(timeout=5)
            return FakeSentenceModel()

        provider = make_provider(slow_loader)
        waiter = asyncio.ensure_future(provider.acquire())
        await asyncio.sleep(0)
        waiter.cancel()
        gate.set()

        model = await provider.acquire()
        assert model is not None
        assert provider.load_count == 1

    @pytest.mark.asyncio
    async def test_dispose_drops_model(self, provider):
        await provider.acquire()
        provider.dispose()
        assert provider.is_ready is False

        await provider.acquire()
        assert provider.load_count == 2


class TestEmbeddingProviderEmbed:
    @pytest.mark.asyncio
    async def test_embed_acquires_lazily(self, provider, fake_model):
        vector = await provider.embed("Machine learning engineer")
        assert vector.shape == (FAKE_DIMENSION,)
        assert fake_model.calls == ["Machine learning engineer"]

    @pytest.mark.asyncio
    async def test_embed_is_deterministic(self, provider):
        a = await provider.embed("Backend engineer")
        b = await provider.embed("Backend engineer")
        np.testing.assert_allclose(a, b)

    @pytest.mark.asyncio
    async def test_inference_failure_raises_embedding_failed(self, make_provider):
        model = FakeSentenceModel(fail_on="poison")
        provider = make_provider(lambda name, device: model)
        with pytest.raises(EmbeddingFailedError) as exc_info:
            await provider.embed("poison pill")
        assert isinstance(exc_info.value.reason, RuntimeError)

    def test_embedding_failed_names_entry(self):
        error = EmbeddingFailedError("j2", RuntimeError("cannot embed"))
        assert error.entry_id == "j2"
        assert "entry j2" in str(error)
        assert "entry" not in str(EmbeddingFailedError(None))

    @pytest.mark.asyncio
    async def test_embed_without_model_raises_model_unavailable(self, failing_provider):
        with pytest.raises(ModelUnavailableError):
            await failing_provider.embed("anything")

    @pytest.mark.asyncio
    async def test_timeout_raises_embedding_failed(self, make_provider):
        gate = threading.Event()
        model = FakeSentenceModel(gate=gate)
        provider = make_provider(lambda name, device: model, timeout=0.05)
        try:
            with pytest.raises(EmbeddingFailedError):
                await provider.embed("React")
        finally:
            gate.set()
