"""Bank-specific export parsers.

Each refinement extends BankParser and overrides only what's different
for that bank's export layout (columns, date format, sign convention).
"""

from .amex import AmexParser
from .cibc import CIBCParser

__all__ = ["CIBCParser", "AmexParser"]
