"""Languages the client can switch between.

The enabled set comes from SUPPORTED_LANGUAGES; these are the labels shown in
the language picker (native script first).
"""

LANGUAGE_LABELS = {
    'en': {'name': 'English', 'native': 'English'},
    'kn': {'name': 'Kannada', 'native': 'ಕನ್ನಡ'},
    'hi': {'name': 'Hindi', 'native': 'हिन्दी'},
}


def language_label(code):
    """Label dict for a language code, falling back to the code itself."""
    return LANGUAGE_LABELS.get(code, {'name': code, 'native': code})
