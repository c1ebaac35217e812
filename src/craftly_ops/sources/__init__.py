"""Sources de factures (frontière avec la base de données)."""

from craftly_ops.sources.base import InvoiceSource, StaticInvoiceSource
from craftly_ops.sources.csv_source import CsvInvoiceSource

__all__ = ["CsvInvoiceSource", "InvoiceSource", "StaticInvoiceSource"]
