"""Shared utilities for the ReliefNet backend."""

from reliefnet.utils.auth import (
    token_required,
    token_optional,
    admin_required,
    generate_token,
)
from reliefnet.utils.validation import clean_text, json_object, parse_coordinate, parse_language

__all__ = [
    'token_required',
    'token_optional',
    'admin_required',
    'generate_token',
    'clean_text',
    'json_object',
    'parse_coordinate',
    'parse_language',
]
