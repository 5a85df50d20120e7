"""
Casekeeper - Discord moderation assistant with a permanent case record.

Core Components:

- **Permissions**: staff-role hierarchy plus per-user overrides. Override-only
  actors are invisible: their actions run but leave no record.
- **Ledgers**: per-guild warning history, sequentially numbered cases (with a
  per-user JSON export) and one-time ban override codes with a delayed
  disclosure sweep.
- **Dispatcher**: validate, authorize, execute, record and log for every
  moderation command, independent of the Discord client.
- **Bot**: py-cord cogs that turn slash commands into dispatcher intents.
"""
