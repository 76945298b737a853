"""Database models."""
from ledger.models.category import Category
from ledger.models.import_batch import ImportBatch
from ledger.models.mapping_template import ColumnMappingTemplate
from ledger.models.transaction import Transaction

__all__ = ["Category", "ColumnMappingTemplate", "ImportBatch", "Transaction"]
