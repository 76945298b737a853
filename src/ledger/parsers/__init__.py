"""Statement export parsing.

Bank exports (CSV / XLSX) are read into typed grids, matched to a known
format or a user column mapping, and parsed into canonical transactions:
- BankParser defines the detect / validate / parse contract
- Bank-specific refinements handle known export layouts
- MappingParser handles everything else through a ColumnMapping
"""

from ledger.parsers.base import BankParser
from ledger.parsers.custom import MappingParser
from ledger.parsers.detector import FormatDetector
from ledger.parsers.factory import ParserFactory
from ledger.parsers.reader import Grid, read_tabular

__all__ = [
    "BankParser",
    "FormatDetector",
    "Grid",
    "MappingParser",
    "ParserFactory",
    "read_tabular",
]
