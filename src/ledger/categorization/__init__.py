"""Transaction categorization.

Keyword-based, local and deterministic: no network calls, no fuzzy
matching. Ambiguous matches are surfaced as conflicts instead of guessed.
"""

from .rules import CategoryRule, categorize

__all__ = ["CategoryRule", "categorize"]
