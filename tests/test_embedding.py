"""Tests for the embeddings client."""
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError

from talentnest.config import PipelineConfig
from talentnest.embedding import MAX_EMBED_CHARS, EmbeddingClient, format_job_description
from talentnest.errors import EmbeddingFailed
from talentnest.models import JobPosting


def embedding_response(*vectors):
    return SimpleNamespace(data=[SimpleNamespace(embedding=list(v)) for v in vectors])


def make_client(**create_kwargs):
    api = MagicMock()
    api.embeddings.create = MagicMock(**create_kwargs)
    return EmbeddingClient(PipelineConfig(retry_attempts=3, retry_base_delay=0.0), client=api), api


class TestFormatJobDescription:
    def test_layout(self):
        job = JobPosting(
            id="j", title="Data Engineer", description="Own our pipelines.", role="Data Engineer",
            skills=["Python", "Spark"], experience="3 years", company_name="Acme",
            department="Platform", country="Kenya",
        )
        text = format_job_description(job)
        assert text.startswith("Job Title: Data Engineer\nExperience: 3 years\nRole: Data Engineer\n")
        assert "Location: Kenya" in text
        assert "**Must-Have Skills:** Python, Spark" in text
        assert "Company: Acme" in text
        assert text.endswith("Description:\nOwn our pipelines.")


class TestEmbeddingClient:
    def test_returns_vector(self):
        embedder, api = make_client(return_value=embedding_response([0.1, 0.2, 0.3]))
        assert embedder.embed("  Go developer  ") == [0.1, 0.2, 0.3]
        kwargs = api.embeddings.create.call_args.kwargs
        assert kwargs["input"] == ["Go developer"]
        assert kwargs["model"] == embedder.model

    def test_long_text_is_truncated(self):
        embedder, api = make_client(return_value=embedding_response([1.0]))
        embedder.embed("a" * (MAX_EMBED_CHARS + 500))
        assert len(api.embeddings.create.call_args.kwargs["input"][0]) == MAX_EMBED_CHARS

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_text_makes_no_call(self, text):
        embedder, api = make_client(return_value=embedding_response([1.0]))
        with pytest.raises(EmbeddingFailed):
            embedder.embed(text)
        api.embeddings.create.assert_not_called()

    def test_empty_response(self):
        embedder, _ = make_client(return_value=embedding_response())
        with pytest.raises(EmbeddingFailed, match="no vectors"):
            embedder.embed("text")

    def test_empty_vector(self):
        embedder, _ = make_client(return_value=embedding_response([]))
        with pytest.raises(EmbeddingFailed, match="empty vector"):
            embedder.embed("text")

    def test_unexpected_error_is_wrapped_without_retry(self):
        error = ValueError("bad request")
        embedder, api = make_client(side_effect=error)
        with pytest.raises(EmbeddingFailed) as excinfo:
            embedder.embed("text")
        assert excinfo.value.__cause__ is error
        assert api.embeddings.create.call_count == 1

    def test_connection_error_is_retried(self):
        request = httpx.Request("POST", "https://api.example.com/v1/embeddings")
        embedder, api = make_client(
            side_effect=[APIConnectionError(request=request), embedding_response([0.5, 0.5])]
        )
        with patch("talentnest.retry.time.sleep") as sleep:
            assert embedder.embed("text") == [0.5, 0.5]
        assert api.embeddings.create.call_count == 2
        sleep.assert_called_once()

    def test_gives_up_after_max_attempts(self):
        request = httpx.Request("POST", "https://api.example.com/v1/embeddings")
        embedder, api = make_client(side_effect=APIConnectionError(request=request))
        with patch("talentnest.retry.time.sleep"):
            with pytest.raises(EmbeddingFailed):
                embedder.embed("text")
        assert api.embeddings.create.call_count == 3

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("EMBEDDING_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        embedder = EmbeddingClient(PipelineConfig(retry_attempts=1))
        with pytest.raises(EmbeddingFailed, match="API_KEY"):
            embedder.embed("text")
