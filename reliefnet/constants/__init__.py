"""Shared constants."""

from .languages import LANGUAGE_LABELS, language_label

__all__ = ['LANGUAGE_LABELS', 'language_label']
