"""
Utility helpers for Casekeeper.

- **logger.py**: Centralized logging configuration with coloured console output
  and one rotating log file per session. Silences Discord's networking loggers.

- **discord_utils.py**: Stateless Discord helpers: target parsing, the fixed
  timeout duration choices, default avatar URLs, and millisecond timestamps.
"""
