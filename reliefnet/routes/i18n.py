"""UI translation routes.

The client sends every string it is about to render. Cached translations
come back immediately; the rest come back untranslated and are queued for
the next batch. The client polls /version and re-sends its strings when the
number changes.
"""

from flask import Blueprint, request, jsonify, current_app
from reliefnet.constants import language_label
from reliefnet.services.translation import KeyState, get_translation_cache, get_cache_version
from reliefnet.utils import json_object, parse_language

i18n_bp = Blueprint('i18n', __name__)

MAX_TEXTS_PER_REQUEST = 500
MAX_TEXT_LENGTH = 5000


@i18n_bp.route('/languages', methods=['GET'])
def languages():
    default = current_app.config['DEFAULT_LANGUAGE']
    return jsonify({
        'default': default,
        'languages': [
            {'code': code, **language_label(code), 'default': code == default}
            for code in current_app.config['SUPPORTED_LANGUAGES']
        ],
    }), 200


@i18n_bp.route('/translate', methods=['POST'])
def translate():
    """Translate a list of UI strings.

    Body: {"lang": "kn", "texts": ["Home", "Donations"]}
    """
    data = json_object()
    lang = parse_language(data.get('lang'))
    texts = data.get('texts')

    if not lang:
        return jsonify({'error': 'Unsupported or missing lang'}), 400
    if not isinstance(texts, list) or not all(isinstance(t, str) for t in texts):
        return jsonify({'error': 'texts must be a list of strings'}), 400
    if len(texts) > MAX_TEXTS_PER_REQUEST:
        return jsonify({'error': f'At most {MAX_TEXTS_PER_REQUEST} texts per request'}), 400
    if any(len(t) > MAX_TEXT_LENGTH for t in texts):
        return jsonify({'error': f'Texts must be less than {MAX_TEXT_LENGTH} characters'}), 400

    cache = get_translation_cache()
    translations = {}
    pending = []
    for text in texts:
        translations[text] = cache.translate(text, lang)
        if cache.key_state(text, lang) in (KeyState.QUEUED, KeyState.IN_FLIGHT) and text not in pending:
            pending.append(text)

    return jsonify({
        'lang': lang,
        'translations': translations,
        'pending': pending,
        'version': get_cache_version().value,
        'disabled': cache.translation_disabled,
    }), 200


@i18n_bp.route('/version', methods=['GET'])
def version():
    """Cache version, plus batch state when ?lang= is given."""
    response = {'version': get_cache_version().value}

    lang = parse_language(request.args.get('lang'))
    if lang:
        cache = get_translation_cache()
        outcome = cache.last_outcome(lang)
        response.update({
            'lang': lang,
            'state': cache.flush_state(lang).value,
            'pending': len(cache.pending(lang)),
            'last_outcome': outcome.value if outcome else None,
        })

    return jsonify(response), 200
