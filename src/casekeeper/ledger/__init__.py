"""
The three persisted ledgers and the case export view.

- **warning_ledger.py**: per-guild, per-user warning history.
- **case_ledger.py**: per-guild sequentially numbered case records.
- **case_export.py**: per-user JSON files and an index written after every
  case-ledger change.
- **override_codes.py**: one-time override codes, consumption and the delayed
  disclosure sweep.
"""
