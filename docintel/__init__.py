"""Document Intelligence for lending documents.

Extracts normalized, confidence-scored fields from W-2s, paystubs, bank
statements, tax returns and identity documents, using a Claude vision
model with a local Tesseract fallback.
"""

__version__ = "1.0.0"
