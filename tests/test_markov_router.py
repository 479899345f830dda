"""
Tests for the Markov HTTP router.
"""
import pytest
from fastapi.testclient import TestClient

from markovian.api.routers.markov_router import MODEL_CACHE, detokenize, tokenize
from markovian.app import app
from markovian.config import settings


@pytest.fixture
def client():
    """Test client with an empty model cache."""
    MODEL_CACHE.clear()
    with TestClient(app) as c:
        yield c
    MODEL_CACHE.clear()


def train(client, name, corpus, **kwargs):
    payload = {"model_name": name, "corpus": corpus, **kwargs}
    return client.post("/markov/train", json=payload)


class TestTokenize:
    """Test suite for tokenize/detokenize."""

    def test_char_level(self):
        """Test lines are joined with newlines and split into characters."""
        assert tokenize(["ab", "c"], "char") == ["a", "b", "\n", "c"]
        assert detokenize(["a", "b"], "char") == "ab"

    def test_word_level(self):
        """Test whitespace word splitting across lines."""
        assert tokenize(["the cat", "sat  down"], "word") == ["the", "cat", "sat", "down"]
        assert detokenize(["the", "cat"], "word") == "the cat"


class TestMarkovRouter:
    """Test suite for /markov endpoints."""

    def test_health(self, client):
        """Test the service reports healthy."""
        res = client.get("/health")

        assert res.status_code == 200
        assert res.json()["data"]["status"] == "healthy"

    def test_train(self, client):
        """Test training stores a chain."""
        res = train(client, "cycle", ["abcabcabc"], memory=2)

        assert res.status_code == 200
        body = res.json()
        assert body["ok"] is True
        assert body["memory"] == 2
        assert body["size"] == 3
        assert "cycle" in MODEL_CACHE

    def test_train_empty_corpus(self, client):
        """Test empty corpus is a bad request."""
        assert train(client, "empty", []).status_code == 400
        assert train(client, "blank", [""]).status_code == 400

    def test_train_corpus_shorter_than_memory(self, client):
        """Test a corpus with no full window is rejected."""
        res = train(client, "short", ["ab"], memory=3)

        assert res.status_code == 422
        assert "short" not in MODEL_CACHE

    def test_generate_with_prefix(self, client):
        """Test a prefix makes the cycle deterministic."""
        train(client, "cycle", ["abcabcabc"], memory=2)

        res = client.post("/markov/generate", json={
            "model_name": "cycle", "length": 10, "prefix": "a",
        })

        assert res.status_code == 200
        data = res.json()["data"]
        assert data["text"] == "bcabcabcab"
        assert data["tokens"] == 10
        assert data["truncated"] is False

    def test_generate_seed_is_reproducible(self, client):
        """Test the same seed yields the same text."""
        train(client, "words", ["the cat sat on the mat and the cat ran"] * 5, level="word", memory=1)
        payload = {"model_name": "words", "length": 25, "seed": 11}

        first = client.post("/markov/generate", json=payload).json()["data"]["text"]
        second = client.post("/markov/generate", json=payload).json()["data"]["text"]

        assert first == second
        assert len(first.split()) == 25

    def test_generate_unknown_model(self, client):
        """Test generating from an untrained model is 404."""
        res = client.post("/markov/generate", json={"model_name": "nope"})

        assert res.status_code == 404

    def test_generate_bad_prefix(self, client):
        """Test a prefix with unknown tokens is rejected."""
        train(client, "cycle", ["abcabcabc"], memory=2)

        res = client.post("/markov/generate", json={"model_name": "cycle", "prefix": "z"})

        assert res.status_code == 422

    def test_generate_dead_end_truncates(self, client):
        """Test a context with no continuation ends the text."""
        train(client, "dead", ["aaab"], memory=2)

        res = client.post("/markov/generate", json={"model_name": "dead", "prefix": "b"})

        assert res.status_code == 200
        data = res.json()["data"]
        assert data["truncated"] is True
        assert data["tokens"] == 0

    def test_generate_length_bounds(self, client):
        """Test length is validated."""
        train(client, "cycle", ["abcabcabc"], memory=2)

        res = client.post("/markov/generate", json={"model_name": "cycle", "length": 0})

        assert res.status_code == 422

    def test_merge(self, client):
        """Test merging two chains combines their counts."""
        train(client, "left", ["aaab"], memory=1)
        train(client, "right", ["bbbc"], memory=1)

        res = client.post("/markov/merge", json={"target": "left", "source": "right"})

        assert res.status_code == 200
        assert res.json()["size"] == 3
        counts = MODEL_CACHE["left"].chain.counter.raw_counts.as_dict()
        assert counts == {"a": 3, "b": 4, "c": 1}

    def test_merge_level_mismatch(self, client):
        """Test char and word chains cannot be merged."""
        train(client, "chars", ["abab"], memory=1)
        train(client, "words", ["ab ab"], memory=1, level="word")

        res = client.post("/markov/merge", json={"target": "chars", "source": "words"})

        assert res.status_code == 400

    def test_merge_missing_model(self, client):
        """Test merging an unknown model is 404."""
        train(client, "left", ["aaab"], memory=1)

        res = client.post("/markov/merge", json={"target": "left", "source": "ghost"})

        assert res.status_code == 404

    def test_model_info(self, client):
        """Test model metadata."""
        train(client, "cycle", ["abcabcabc"], memory=2, max_tokens=10)
        client.post("/markov/generate", json={"model_name": "cycle", "length": 5, "prefix": "a"})

        res = client.get("/markov/models/cycle")

        assert res.status_code == 200
        data = res.json()["data"]
        assert data["memory"] == 2
        assert data["max_tokens"] == 10
        assert data["size"] == 3
        assert data["level"] == "char"
        assert data["windows"] == 3
        assert data["cached_contexts"] >= 1

    def test_train_tensor_too_large(self, client):
        """Test a vocabulary and memory past the cell limit is rejected, not allocated."""
        corpus = [" ".join(f"w{i}" for i in range(400))]

        res = train(client, "huge", corpus, level="word", memory=8)

        assert res.status_code == 422
        assert "cells" in res.json()["detail"]
        assert "huge" not in MODEL_CACHE

    def test_train_respects_configured_limit(self, client, monkeypatch):
        """Test the limit comes from settings."""
        monkeypatch.setattr(settings, "TENSOR_MAX_CELLS", 9)

        assert train(client, "small", ["abcabcabc"], memory=2).status_code == 200
        assert train(client, "big", ["abcabcabc"], memory=3).status_code == 422

    def test_generate_after_merge_past_limit(self, client, monkeypatch):
        """Test a merge that outgrows the limit fails generation with 422."""
        train(client, "left", ["abab"], memory=2)
        train(client, "right", ["cdcd"], memory=2)
        monkeypatch.setattr(settings, "TENSOR_MAX_CELLS", 4)

        client.post("/markov/merge", json={"target": "left", "source": "right"})
        res = client.post("/markov/generate", json={"model_name": "left", "prefix": "a"})

        assert res.status_code == 422
