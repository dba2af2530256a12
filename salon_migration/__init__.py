"""
Salon Migration

Bulk import pipeline for moving a salon's records out of legacy management
systems and spreadsheets into the salon backend.

Supports:
- CSV/TXT exports (comma, semicolon or tab separated)
- JSON backups keyed by entity
- Vendor legacy SQL dumps (INSERT INTO statements)
- File/table detection, field mapping and pre-import validation
- Duplicate handling (merge, replace, keep both)
- Sequenced batch import with progress events and cancellation
- Triage of imported clients with incomplete profiles
"""

__version__ = "0.1.0"
