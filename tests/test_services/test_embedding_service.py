"""
EmbeddingService tests

The OpenAI client is real but its ``embeddings.create`` is patched.
"""

from unittest.mock import Mock, patch

import pytest

from newsletter_digest.services.embedding_service import (
    DEFAULT_EMBEDDING_MODEL,
    EmbeddingService,
)


def create_mock_response(vectors: list[list[float]], indices: list[int] | None = None) -> Mock:
    """API response with one data item per vector."""
    indices = indices if indices is not None else list(range(len(vectors)))
    response = Mock()
    response.data = [Mock(embedding=v, index=i) for v, i in zip(vectors, indices)]
    return response


class TestEmbeddingServiceInit:
    """EmbeddingService initialization"""

    def test_defaults(self):
        service = EmbeddingService({'api_key': 'test-key'})

        assert service.model == DEFAULT_EMBEDDING_MODEL
        assert service.timeout == 60

    def test_custom_config(self):
        service = EmbeddingService({
            'api_base': 'https://custom.api.com/v1',
            'api_key': 'custom-key',
            'model': 'custom-embedding-model',
            'timeout': 30,
        })

        assert service.model == 'custom-embedding-model'
        assert service.timeout == 30

    def test_injected_client(self):
        client = Mock()
        service = EmbeddingService({}, client=client)
        assert service.client is client


class TestEmbed:
    """embed()"""

    def test_empty_input(self):
        service = EmbeddingService({'api_key': 'test-key'})
        with pytest.raises(ValueError, match="cannot be empty"):
            service.embed([])

    def test_returns_one_vector_per_text(self):
        service = EmbeddingService({'api_key': 'test-key'})
        mock_response = create_mock_response([[0.1, 0.2], [0.3, 0.4]])

        with patch.object(service.client.embeddings, 'create', return_value=mock_response) as create:
            result = service.embed(["first", "second"])

        assert result == [[0.1, 0.2], [0.3, 0.4]]
        create.assert_called_once()
        assert create.call_args.kwargs['input'] == ["first", "second"]
        assert create.call_args.kwargs['model'] == DEFAULT_EMBEDDING_MODEL

    def test_restores_input_order(self):
        service = EmbeddingService({'api_key': 'test-key'})
        mock_response = create_mock_response([[2.0], [1.0]], indices=[1, 0])

        with patch.object(service.client.embeddings, 'create', return_value=mock_response):
            result = service.embed(["a", "b"])

        assert result == [[1.0], [2.0]]

    def test_count_mismatch(self):
        service = EmbeddingService({'api_key': 'test-key'})
        mock_response = create_mock_response([[0.1]])

        with patch.object(service.client.embeddings, 'create', return_value=mock_response):
            with pytest.raises(RuntimeError, match="mismatch"):
                service.embed(["a", "b"])

    def test_api_error_propagates(self):
        service = EmbeddingService({'api_key': 'test-key'})

        with patch.object(service.client.embeddings, 'create', side_effect=ConnectionError("down")):
            with pytest.raises(ConnectionError):
                service.embed(["a"])
