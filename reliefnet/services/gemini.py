"""Gemini text-generation client.

Thin wrapper over the Gemini REST API used for two things:
- batch translation of UI strings (see services/translation.py)
- the safety chat assistant

Failures are classified so callers can tell a quota problem or a bad API key
apart from a transient error.
"""
import os
import json
import logging
from dataclasses import dataclass
from enum import Enum

import requests

from reliefnet.constants import language_label

logger = logging.getLogger(__name__)

GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY', '')
GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.5-flash')
GEMINI_URL = 'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent'
GEMINI_TIMEOUT = float(os.environ.get('GEMINI_TIMEOUT', 20))

CHAT_SYSTEM_INSTRUCTION = (
    "You are the ReliefNet AI Assistant. "
    "Your goal is to help users report disasters, find safety information, and understand how to donate. "
    "ReliefNet operates in the Bangalore region. Be calm, empathetic, and concise. "
    "If a user reports an emergency, advise them to contact local emergency services (112/100) immediately."
)

CHAT_EMPTY_REPLY = "I'm here to help, but I didn't receive a response. Could you try asking that again?"
CHAT_UNAVAILABLE_REPLY = (
    "I'm having a bit of trouble connecting to my service. "
    "Please check your internet connection and try again shortly."
)
CHAT_QUOTA_REPLY = "The assistant is receiving too many requests right now. Please try again in a few minutes."
CHAT_AUTH_REPLY = "The assistant is not configured correctly. Please contact the site administrator."


class GenerationOutcome(Enum):
    SUCCESS = 'success'
    TRANSIENT_FAILURE = 'transient_failure'
    QUOTA_EXCEEDED = 'quota_exceeded'
    AUTH_ERROR = 'auth_error'


class GenerationError(Exception):
    """Text generation failed; retrying later may succeed."""
    outcome = GenerationOutcome.TRANSIENT_FAILURE


class MalformedResponseError(GenerationError):
    """The model answered, but not in the requested shape."""


class QuotaExceededError(GenerationError):
    outcome = GenerationOutcome.QUOTA_EXCEEDED


class AuthenticationError(GenerationError):
    """API key missing, invalid, or not allowed to use the model."""
    outcome = GenerationOutcome.AUTH_ERROR


@dataclass
class ChatReply:
    outcome: GenerationOutcome
    text: str


def _raise_for_error(response):
    """Map an error response from the API to the matching exception."""
    try:
        error = response.json().get('error', {})
    except ValueError:
        error = {}
    status = error.get('status', '')
    message = error.get('message', '') or response.text[:200]
    reasons = [d.get('reason') for d in error.get('details', []) if isinstance(d, dict)]

    if response.status_code == 429 or status == 'RESOURCE_EXHAUSTED':
        raise QuotaExceededError(message or 'quota exceeded')
    if 'API_KEY_INVALID' in reasons or response.status_code in (401, 403, 404) \
            or status in ('UNAUTHENTICATED', 'PERMISSION_DENIED'):
        raise AuthenticationError(message or 'authentication failed')
    raise GenerationError(f"Gemini error {response.status_code}: {message}")


def generate(contents, response_schema=None, system_instruction=None, temperature=None):
    """Call generateContent and return the text of the first candidate.

    Args:
        contents: a prompt string or a list of {'role', 'parts'} turns
        response_schema: optional JSON schema; switches the response to JSON
        system_instruction: optional system prompt
        temperature: optional sampling temperature

    Raises:
        GenerationError (or a subclass) on any failure
    """
    if not GEMINI_API_KEY:
        raise AuthenticationError('GEMINI_API_KEY is not set')

    if isinstance(contents, str):
        contents = [{'role': 'user', 'parts': [{'text': contents}]}]

    body = {'contents': contents}
    generation_config = {}
    if response_schema is not None:
        generation_config['responseMimeType'] = 'application/json'
        generation_config['responseSchema'] = response_schema
    if temperature is not None:
        generation_config['temperature'] = temperature
    if generation_config:
        body['generationConfig'] = generation_config
    if system_instruction:
        body['systemInstruction'] = {'parts': [{'text': system_instruction}]}

    url = GEMINI_URL.format(model=GEMINI_MODEL)
    try:
        response = requests.post(
            url,
            params={'key': GEMINI_API_KEY},
            json=body,
            timeout=GEMINI_TIMEOUT,
        )
    except requests.Timeout:
        raise GenerationError('Gemini request timed out')
    except requests.RequestException as e:
        raise GenerationError(f'Gemini request failed: {e}')

    if response.status_code != 200:
        _raise_for_error(response)

    try:
        result = response.json()
        parts = result['candidates'][0]['content']['parts']
    except (ValueError, KeyError, IndexError, TypeError):
        raise MalformedResponseError('Unexpected Gemini response format')

    return ''.join(part.get('text', '') for part in parts)


def translate_batch(texts, language):
    """Translate an ordered list of strings, returning the same length and order."""
    language_name = language_label(language)['name']
    prompt = (
        f"Translate the following list of strings into {language_name}.\n"
        "Return ONLY a JSON array of strings in the exact same order.\n"
        "Do not explain anything.\n\n"
        f"Strings: {json.dumps(list(texts), ensure_ascii=False)}"
    )
    raw = generate(prompt, response_schema={'type': 'ARRAY', 'items': {'type': 'STRING'}})

    try:
        translated = json.loads(raw or '[]')
    except ValueError:
        raise MalformedResponseError('Translation response is not JSON')

    if not isinstance(translated, list) or not all(isinstance(t, str) for t in translated):
        raise MalformedResponseError('Translation response is not a list of strings')
    if len(translated) != len(texts):
        raise MalformedResponseError(
            f'Expected {len(texts)} translations, got {len(translated)}'
        )
    return translated


def normalize_history(history):
    """Turn chat history into strictly alternating user/model turns.

    The API rejects two consecutive turns from the same role, and the
    conversation has to open with a user turn.
    """
    contents = []
    last_role = None
    for entry in history or []:
        if not isinstance(entry, dict):
            continue
        role = entry.get('role')
        text = entry.get('text')
        if not isinstance(text, str) or not text:
            continue
        if role == 'user' and last_role in (None, 'model'):
            contents.append({'role': 'user', 'parts': [{'text': text}]})
            last_role = 'user'
        elif role == 'model' and last_role == 'user':
            contents.append({'role': 'model', 'parts': [{'text': text}]})
            last_role = 'model'
    # The new message must follow a model turn
    if last_role == 'user':
        contents.pop()
    return contents


def chat_reply(history, message):
    """Answer a chat message. Never raises; failures come back as an outcome."""
    contents = normalize_history(history)
    contents.append({'role': 'user', 'parts': [{'text': message}]})

    try:
        text = generate(
            contents,
            system_instruction=CHAT_SYSTEM_INSTRUCTION,
            temperature=0.7,
        )
    except QuotaExceededError as e:
        logger.warning(f"Chat quota exceeded: {e}")
        return ChatReply(GenerationOutcome.QUOTA_EXCEEDED, CHAT_QUOTA_REPLY)
    except AuthenticationError as e:
        logger.error(f"Chat authentication error: {e}")
        return ChatReply(GenerationOutcome.AUTH_ERROR, CHAT_AUTH_REPLY)
    except GenerationError as e:
        logger.warning(f"Chat generation failed: {e}")
        return ChatReply(GenerationOutcome.TRANSIENT_FAILURE, CHAT_UNAVAILABLE_REPLY)

    return ChatReply(GenerationOutcome.SUCCESS, text or CHAT_EMPTY_REPLY)
