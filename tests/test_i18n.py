"""
Tests for UI translation endpoints.
"""

from reliefnet.services.gemini import AuthenticationError


def _translate(client, texts, lang='kn'):
    return client.post('/api/i18n/translate', json={'lang': lang, 'texts': texts})


class TestLanguages:

    def test_lists_supported_languages(self, client):
        response = client.get('/api/i18n/languages')

        assert response.status_code == 200
        codes = [entry['code'] for entry in response.json['languages']]
        assert codes == ['en', 'kn', 'hi']
        assert response.json['default'] == 'en'
        kannada = response.json['languages'][1]
        assert kannada['native'] == 'ಕನ್ನಡ'


class TestTranslate:
    """Tests for POST /api/i18n/translate"""

    def test_miss_returns_original_and_queues(self, client, timers):
        response = _translate(client, ['Home', 'Donations'])

        assert response.status_code == 200
        assert response.json['translations'] == {'Home': 'Home', 'Donations': 'Donations'}
        assert response.json['pending'] == ['Home', 'Donations']
        assert len(timers.active()) == 1

    def test_filled_after_batch(self, client, timers, translator):
        translator.mapping = {'Home': 'ಮುಖಪುಟ'}
        before = _translate(client, ['Home', 'Donations']).json['version']

        timers.fire_all()
        response = _translate(client, ['Home', 'Donations'])

        assert response.json['translations'] == {'Home': 'ಮುಖಪುಟ', 'Donations': 'kn:Donations'}
        assert response.json['pending'] == []
        assert response.json['version'] == before + 1
        assert translator.calls == [(['Home', 'Donations'], 'kn')]

    def test_default_language_passthrough(self, client, timers):
        response = _translate(client, ['Home'], lang='en')

        assert response.json['translations'] == {'Home': 'Home'}
        assert response.json['pending'] == []
        assert timers.active() == []

    def test_region_suffix_is_ignored(self, client):
        response = _translate(client, ['Home'], lang='hi-IN')

        assert response.json['lang'] == 'hi'

    def test_duplicate_texts_are_queued_once(self, client, timers, translator):
        _translate(client, ['Home', 'Home', 'Home'])
        timers.fire_all()

        assert translator.calls == [(['Home'], 'kn')]

    def test_unsupported_language(self, client):
        response = _translate(client, ['Home'], lang='fr')

        assert response.status_code == 400

    def test_texts_must_be_strings(self, client):
        response = _translate(client, ['Home', 42])

        assert response.status_code == 400

    def test_too_many_texts(self, client):
        response = _translate(client, [f'text {i}' for i in range(501)])

        assert response.status_code == 400

    def test_auth_error_disables_translation(self, client, timers, translator):
        translator.errors.append(AuthenticationError('API key not valid'))
        _translate(client, ['Home'])
        timers.fire_all()

        response = _translate(client, ['Home'])

        assert response.json['disabled'] is True
        assert response.json['translations'] == {'Home': 'Home'}
        assert response.json['pending'] == []


class TestVersion:
    """Tests for GET /api/i18n/version"""

    def test_version_only(self, client):
        response = client.get('/api/i18n/version')

        assert response.status_code == 200
        assert response.json == {'version': 0}

    def test_language_state(self, client, timers):
        _translate(client, ['Home', 'Report'])

        queued = client.get('/api/i18n/version?lang=kn').json
        assert queued['state'] == 'queued'
        assert queued['pending'] == 2
        assert queued['last_outcome'] is None

        timers.fire_all()

        done = client.get('/api/i18n/version?lang=kn').json
        assert done['state'] == 'idle'
        assert done['pending'] == 0
        assert done['last_outcome'] == 'success'
        assert done['version'] == 1
