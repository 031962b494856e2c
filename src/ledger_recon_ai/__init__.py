"""
AI-assisted ledger reconciliation and purchase-rate insights.

Reconciles two ledger PDFs through a hosted model, streaming progress while
it works, and exports the structured result to a spreadsheet.
"""

__version__ = "0.1.0"
