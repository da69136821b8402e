"""Safety assistant chat route."""

from flask import Blueprint, jsonify
from reliefnet import limiter
from reliefnet.services import gemini
from reliefnet.services.gemini import GenerationOutcome
from reliefnet.utils import clean_text, json_object

chat_bp = Blueprint('chat', __name__)

MAX_MESSAGE_LENGTH = 2000
MAX_HISTORY = 30

OUTCOME_STATUS = {
    GenerationOutcome.SUCCESS: 200,
    GenerationOutcome.QUOTA_EXCEEDED: 429,
    GenerationOutcome.AUTH_ERROR: 503,
    GenerationOutcome.TRANSIENT_FAILURE: 502,
}


@chat_bp.route('', methods=['POST'])
@limiter.limit("20 per minute")
def chat():
    """Answer a message given the earlier conversation.

    Body: {"message": str, "history": [{"role": "user"|"model", "text": str}, ...]}
    The outcome field tells the client whether to show the reply or a
    corrective action (quota_exceeded, auth_error, transient_failure).
    """
    data = json_object()
    message = clean_text(data.get('message'))
    history = data.get('history') or []

    if message is None:
        return jsonify({'error': 'message must be a string'}), 400
    if not message:
        return jsonify({'error': 'message is required'}), 400
    if len(message) > MAX_MESSAGE_LENGTH:
        return jsonify({'error': f'message must be less than {MAX_MESSAGE_LENGTH} characters'}), 400
    if not isinstance(history, list) or not all(isinstance(h, dict) for h in history):
        return jsonify({'error': 'history must be a list of messages'}), 400

    reply = gemini.chat_reply(history[-MAX_HISTORY:], message)
    return jsonify({
        'reply': reply.text,
        'outcome': reply.outcome.value,
    }), OUTCOME_STATUS[reply.outcome]
