"""
Background tasks.

- **disclosure_scheduler.py**: runs the override-code disclosure sweep once at
  startup and then on a fixed interval until shutdown.
"""
