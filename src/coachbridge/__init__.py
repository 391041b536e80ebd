"""
Coachbridge: ingestion and reconciliation of coaching and KPI workbooks.

Spreadsheet exports from many client organizations are parsed into
canonical behavior and metric records. Free-text organization, metric and
industry names are resolved against alias rules and static tables, and every
normalization is tracked for review before anything is stored.
"""

__version__ = "0.3.0"
