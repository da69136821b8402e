"""
Tests for the Gemini client and the chat endpoint.
"""

import json

import pytest
import requests

from reliefnet.services import gemini
from reliefnet.services.gemini import (
    AuthenticationError,
    GenerationError,
    GenerationOutcome,
    MalformedResponseError,
    QuotaExceededError,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=''):
        self.status_code = status_code
        self._payload = payload
        self.text = text or json.dumps(payload or {})

    def json(self):
        if self._payload is None:
            raise ValueError('No JSON')
        return self._payload


def _candidate(text):
    return {'candidates': [{'content': {'parts': [{'text': text}]}}]}


def _error(code, status, message='', reason=None):
    error = {'code': code, 'status': status, 'message': message}
    if reason:
        error['details'] = [{'reason': reason}]
    return {'error': error}


@pytest.fixture
def api(monkeypatch):
    """Capture requests.post calls and answer with queued responses."""
    class Api:
        calls = []
        responses = []

        @classmethod
        def post(cls, url, **kwargs):
            cls.calls.append((url, kwargs))
            response = cls.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response

    Api.calls = []
    Api.responses = []
    monkeypatch.setattr(gemini, 'GEMINI_API_KEY', 'test-key')
    monkeypatch.setattr(gemini.requests, 'post', Api.post)
    return Api


class TestGenerate:

    def test_returns_candidate_text(self, api):
        api.responses.append(FakeResponse(payload=_candidate('Stay indoors.')))

        assert gemini.generate('Is it safe?') == 'Stay indoors.'
        url, kwargs = api.calls[0]
        assert url.endswith(':generateContent')
        assert kwargs['params'] == {'key': 'test-key'}
        assert kwargs['json']['contents'][0]['role'] == 'user'

    def test_schema_requests_json(self, api):
        api.responses.append(FakeResponse(payload=_candidate('[]')))

        gemini.generate('x', response_schema={'type': 'ARRAY'})

        config = api.calls[0][1]['json']['generationConfig']
        assert config['responseMimeType'] == 'application/json'

    def test_missing_key(self, api, monkeypatch):
        monkeypatch.setattr(gemini, 'GEMINI_API_KEY', '')

        with pytest.raises(AuthenticationError):
            gemini.generate('hello')
        assert api.calls == []

    @pytest.mark.parametrize('response, error', [
        (FakeResponse(429, _error(429, 'RESOURCE_EXHAUSTED')), QuotaExceededError),
        (FakeResponse(400, _error(400, 'INVALID_ARGUMENT', reason='API_KEY_INVALID')), AuthenticationError),
        (FakeResponse(403, _error(403, 'PERMISSION_DENIED')), AuthenticationError),
        (FakeResponse(500, _error(500, 'INTERNAL')), GenerationError),
        (FakeResponse(503, None, text='Service Unavailable'), GenerationError),
    ])
    def test_error_classification(self, api, response, error):
        api.responses.append(response)

        with pytest.raises(error) as exc_info:
            gemini.generate('hello')
        assert exc_info.type is error

    def test_network_error_is_transient(self, api):
        api.responses.append(requests.ConnectionError('offline'))

        with pytest.raises(GenerationError) as exc_info:
            gemini.generate('hello')
        assert exc_info.value.outcome is GenerationOutcome.TRANSIENT_FAILURE

    def test_unexpected_shape(self, api):
        api.responses.append(FakeResponse(payload={'candidates': []}))

        with pytest.raises(MalformedResponseError):
            gemini.generate('hello')


class TestTranslateBatch:

    def test_translates_in_order(self, api):
        api.responses.append(FakeResponse(payload=_candidate(json.dumps(['ಮುಖಪುಟ', 'ದೇಣಿಗೆ']))))

        assert gemini.translate_batch(['Home', 'Donate'], 'kn') == ['ಮುಖಪುಟ', 'ದೇಣಿಗೆ']
        prompt = api.calls[0][1]['json']['contents'][0]['parts'][0]['text']
        assert 'Kannada' in prompt

    @pytest.mark.parametrize('raw', [
        'not json',
        json.dumps({'Home': 'ಮುಖಪುಟ'}),
        json.dumps(['ಮುಖಪುಟ']),
        json.dumps(['ಮುಖಪುಟ', 3]),
    ])
    def test_malformed_translation(self, api, raw):
        api.responses.append(FakeResponse(payload=_candidate(raw)))

        with pytest.raises(MalformedResponseError):
            gemini.translate_batch(['Home', 'Donate'], 'kn')


class TestNormalizeHistory:

    def test_alternates_and_drops_trailing_user_turn(self):
        history = [
            {'role': 'model', 'text': 'Hello! How can I help?'},
            {'role': 'user', 'text': 'Flooding on my street'},
            {'role': 'user', 'text': 'It is rising'},
            {'role': 'model', 'text': 'Move to higher ground.'},
            {'role': 'user', 'text': 'Thanks'},
        ]

        contents = gemini.normalize_history(history)

        assert [c['role'] for c in contents] == ['user', 'model']
        assert contents[0]['parts'][0]['text'] == 'Flooding on my street'

    def test_skips_malformed_entries(self):
        history = [
            'hello',
            {'role': 'user', 'text': ['Flooding']},
            {'role': 'user', 'text': 'Flooding on my street'},
            {'role': 'model', 'text': 7},
            {'role': 'model', 'text': 'Move to higher ground.'},
        ]

        contents = gemini.normalize_history(history)

        assert [c['parts'][0]['text'] for c in contents] == [
            'Flooding on my street',
            'Move to higher ground.',
        ]

    def test_empty(self):
        assert gemini.normalize_history(None) == []


class TestChatEndpoint:
    """Tests for POST /api/chat"""

    def test_success(self, client, api):
        api.responses.append(FakeResponse(payload=_candidate('Call 112 immediately.')))

        response = client.post('/api/chat', json={
            'message': 'There is a fire nearby',
            'history': [{'role': 'model', 'text': 'Hi!'}],
        })

        assert response.status_code == 200
        assert response.json == {'reply': 'Call 112 immediately.', 'outcome': 'success'}
        body = api.calls[0][1]['json']
        assert body['contents'][-1]['parts'][0]['text'] == 'There is a fire nearby'
        assert 'ReliefNet' in body['systemInstruction']['parts'][0]['text']

    def test_quota_exceeded(self, client, api):
        api.responses.append(FakeResponse(429, _error(429, 'RESOURCE_EXHAUSTED')))

        response = client.post('/api/chat', json={'message': 'Hello'})

        assert response.status_code == 429
        assert response.json['outcome'] == 'quota_exceeded'
        assert response.json['reply'] == gemini.CHAT_QUOTA_REPLY

    def test_auth_error(self, client, api, monkeypatch):
        monkeypatch.setattr(gemini, 'GEMINI_API_KEY', '')

        response = client.post('/api/chat', json={'message': 'Hello'})

        assert response.status_code == 503
        assert response.json['outcome'] == 'auth_error'

    def test_transient_failure(self, client, api):
        api.responses.append(requests.Timeout())

        response = client.post('/api/chat', json={'message': 'Hello'})

        assert response.status_code == 502
        assert response.json['reply'] == gemini.CHAT_UNAVAILABLE_REPLY

    def test_empty_reply(self, client, api):
        api.responses.append(FakeResponse(payload=_candidate('')))

        response = client.post('/api/chat', json={'message': 'Hello'})

        assert response.json['reply'] == gemini.CHAT_EMPTY_REPLY

    def test_message_required(self, client):
        response = client.post('/api/chat', json={'message': '   '})

        assert response.status_code == 400

    @pytest.mark.parametrize('message', [[], 5, {'text': 'Hi'}])
    def test_message_must_be_text(self, client, message):
        response = client.post('/api/chat', json={'message': message})

        assert response.status_code == 400

    def test_body_must_be_object(self, client):
        response = client.post('/api/chat', json=['Hello'])

        assert response.status_code == 400

    def test_history_must_be_list(self, client):
        response = client.post('/api/chat', json={'message': 'Hi', 'history': 'nope'})

        assert response.status_code == 400
