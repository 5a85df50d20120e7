"""
Discord integration for Casekeeper (py-cord).

- **services.py**: builds the moderation core once and hands it to the cogs.
- **discord_platform.py**: sanctions, lookups and channel posts through the
  Discord API, with API errors turned into ``ExternalActionFailure``.
- **embeds.py**: embed rendering for replies, log messages and DMs.
- **cogs/**: the slash commands and event listeners.
"""
