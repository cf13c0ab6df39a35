import pytest

from conftest import FailingProvider, FakeResponse, KeywordProvider, SlowProvider

from experience_recall.embeddings import (
    EmbeddingRecord,
    EmbeddingService,
    LocalProvider,
    NoneProvider,
    OpenAIProvider,
    VoyageProvider,
    content_hash,
    create_provider,
    detect_provider_type,
    normalize_vector,
)
from experience_recall.errors import ProviderError, ValidationError
from experience_recall.reliability import CircuitBreaker, CircuitBreakerConfig, CircuitState


class DummySession:
    def __init__(self, response=None):
        self.response = response or FakeResponse(200, {'data': [{'embedding': [0.1, 0.2, 0.3]}]})
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({'url': url, 'json': json, 'headers': headers, 'timeout': timeout})
        return self.response


class WrongSizeProvider(KeywordProvider):
    def generate_embedding(self, text):
        return [1.0, 0.0]


def test_none_provider_returns_zero_vector():
    provider = NoneProvider(dimensions=4)
    assert provider.generate_embedding('hello') == [0.0, 0.0, 0.0, 0.0]
    assert provider.is_available()
    assert provider.name() == 'none'


@pytest.mark.parametrize('text', ['', None, 'x' * 1_000_001])
def test_invalid_text_is_rejected(text):
    with pytest.raises(ValidationError):
        NoneProvider().generate_embedding(text)
    with pytest.raises(ValidationError):
        EmbeddingService(KeywordProvider()).generate_embedding(text)


def test_normalize_vector():
    assert normalize_vector([3.0, 4.0]) == [0.6, 0.8]
    assert normalize_vector([0.0, 0.0]) == [0.0, 0.0]


def test_service_falls_back_to_zero_vector_when_provider_fails():
    service = EmbeddingService(FailingProvider(dimensions=5))

    result = service.embed_with_status('anything at all')

    assert result.vector == [0.0] * 5
    assert result.degraded
    assert 'provider down' in result.error
    assert service.generate_embedding('again') == [0.0] * 5


def test_service_caches_successful_embeddings():
    provider = KeywordProvider()
    service = EmbeddingService(provider)

    first = service.embed_with_status('the ocean')
    second = service.embed_with_status('the ocean')

    assert first.vector == second.vector == [1.0, 0.0, 0.0]
    assert second.cached
    assert provider.calls == ['the ocean']

    service.clear_cache()
    service.generate_embedding('the ocean')
    assert len(provider.calls) == 2


def test_cache_evicts_least_recently_used():
    provider = KeywordProvider()
    service = EmbeddingService(provider, cache_size=2)
    for text in ('a', 'b', 'a', 'c', 'a', 'b'):
        service.generate_embedding(text)
    assert provider.calls == ['a', 'b', 'c', 'b']


def test_failures_are_not_cached():
    provider = FailingProvider()
    service = EmbeddingService(provider, circuit_breaker=CircuitBreaker('t', CircuitBreakerConfig(failure_threshold=10)))
    service.generate_embedding('same text')
    service.generate_embedding('same text')
    assert provider.calls == 2


def test_circuit_opens_and_stops_calling_provider():
    provider = FailingProvider()
    breaker = CircuitBreaker('embedding:failing', CircuitBreakerConfig(failure_threshold=3))
    service = EmbeddingService(provider, circuit_breaker=breaker)

    for i in range(5):
        assert service.embed_with_status(f'text {i}').degraded

    assert provider.calls == 3
    assert breaker.state == CircuitState.OPEN


def test_timeout_degrades_to_fallback():
    service = EmbeddingService(SlowProvider(delay=0.5), timeout=0.05)
    result = service.embed_with_status('ocean')
    assert result.degraded
    assert result.vector == [0.0, 0.0, 0.0]


def test_dimension_mismatch_is_degraded():
    result = EmbeddingService(WrongSizeProvider()).embed_with_status('ocean')
    assert result.degraded
    assert result.vector == [0.0, 0.0, 0.0]


def test_openai_sends_dimensions_for_v3_models():
    session = DummySession()
    provider = OpenAIProvider(api_key='sk-test', model='text-embedding-3-small', dimensions=256,
                              session=session)

    assert provider.generate_embedding('hello') == [0.1, 0.2, 0.3]

    call = session.calls[0]
    assert call['url'] == 'https://api.openai.com/v1/embeddings'
    assert call['json'] == {'input': 'hello', 'model': 'text-embedding-3-small', 'dimensions': 256}
    assert call['headers']['Authorization'] == 'Bearer sk-test'
    assert provider.dimensions() == 256
    assert provider.name() == 'OpenAI-text-embedding-3-small'


def test_openai_omits_dimensions_for_older_models():
    session = DummySession()
    provider = OpenAIProvider(api_key='sk-test', model='text-embedding-ada-002', dimensions=256,
                              session=session)
    provider.generate_embedding('hello')
    assert 'dimensions' not in session.calls[0]['json']
    assert provider.dimensions() == 1536
    assert OpenAIProvider(api_key='k').dimensions() == 3072


def test_openai_error_status_raises_provider_error():
    session = DummySession(FakeResponse(429, None, text='rate limited'))
    provider = OpenAIProvider(api_key='sk-test', session=session)
    with pytest.raises(ProviderError) as exc_info:
        provider.generate_embedding('hello')
    assert exc_info.value.status == 429
    assert exc_info.value.body == 'rate limited'


def test_openai_malformed_body_raises_provider_error():
    provider = OpenAIProvider(api_key='sk-test', session=DummySession(FakeResponse(200, {'data': []})))
    with pytest.raises(ProviderError):
        provider.generate_embedding('hello')


def test_remote_provider_without_key_is_unavailable():
    session = DummySession()
    assert not OpenAIProvider(api_key='', session=session).is_available()
    assert session.calls == []


def test_voyage_request_body():
    session = DummySession()
    provider = VoyageProvider(api_key='pa-test', input_type='query', session=session)
    provider.generate_embedding('hello')

    call = session.calls[0]
    assert call['url'] == 'https://api.voyageai.com/v1/embeddings'
    assert call['json'] == {
        'input': 'hello',
        'model': 'voyage-3-large',
        'output_dimension': 1024,
        'input_type': 'query',
    }
    assert provider.dimensions() == 1024
    assert provider.name() == 'VoyageAI-voyage-3-large'


def test_detect_provider_type():
    assert detect_provider_type({}, {'OPENAI_API_KEY': 'k', 'VOYAGE_API_KEY': 'v'}) == 'openai'
    assert detect_provider_type({}, {'VOYAGE_API_KEY': 'v'}) == 'voyage'
    assert detect_provider_type({}, {}) == 'local'
    assert detect_provider_type({'provider': 'none'}, {'OPENAI_API_KEY': 'k'}) == 'none'
    assert detect_provider_type({'provider': 'openai'}, {'RECALL_EMBEDDING_PROVIDER': 'voyage'}) == 'voyage'
    with pytest.raises(ValidationError):
        detect_provider_type({'provider': 'cohere'}, {})


def test_create_provider_without_probe():
    provider = create_provider({}, env={'OPENAI_API_KEY': 'k', 'OPENAI_MODEL': 'text-embedding-3-small'},
                               probe=False)
    assert isinstance(provider, OpenAIProvider)
    assert provider.dimensions() == 1536

    provider = create_provider({}, env={'VOYAGE_API_KEY': 'v', 'VOYAGE_DIMENSIONS': '512'}, probe=False)
    assert isinstance(provider, VoyageProvider)
    assert provider.dimensions() == 512

    assert isinstance(create_provider({}, env={}, probe=False), LocalProvider)


def test_create_provider_walks_priority_on_unavailable(monkeypatch):
    monkeypatch.setattr(VoyageProvider, 'is_available', lambda self: False)
    monkeypatch.setattr(LocalProvider, 'is_available', lambda self: False)

    provider = create_provider({'provider': 'voyage', 'voyage_api_key': 'v'}, env={})
    assert isinstance(provider, NoneProvider)


def test_create_provider_falls_back_to_local(monkeypatch):
    monkeypatch.setattr(OpenAIProvider, 'is_available', lambda self: False)
    monkeypatch.setattr(LocalProvider, 'is_available', lambda self: True)

    provider = create_provider({}, env={'OPENAI_API_KEY': 'k'})
    assert isinstance(provider, LocalProvider)


def test_local_provider_alias_and_name():
    provider = LocalProvider(model='baseline')
    assert provider.model_name == 'all-MiniLM-L6-v2'
    assert provider.name() == 'Local-all-MiniLM-L6-v2'
    assert provider.dimensions() == 384


def test_embedding_record_metadata_round_trip():
    record = EmbeddingRecord(source_id='exp_1', vector=[0.1, 0.2], provider='keyword',
                             content_hash=content_hash('calm'))
    restored = EmbeddingRecord.from_dict(record.to_dict())

    assert restored.source_id == 'exp_1'
    assert restored.dimensions == 2
    assert record.to_metadata()['content_hash'] == content_hash('calm')


class RejectingProvider(KeywordProvider):
    def generate_embedding(self, text):
        raise ValidationError("input exceeds model token limit", field='text')


def test_provider_validation_error_is_degraded():
    service = EmbeddingService(RejectingProvider())

    result = service.embed_with_status('a perfectly valid query')

    assert result.degraded
    assert result.vector == [0.0, 0.0, 0.0]
    assert 'token limit' in result.error
