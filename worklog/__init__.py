"""Core (UI-agnostic) worklog logic.

This package contains:
- value parsing and header normalization
- row classification (date separators, leave entries)
- sheet loading (XLSX -> WorkRecord tuples)
- filtering and aggregation
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
