"""
Moderation command handling, independent of the Discord client.

- **errors.py**: exception taxonomy reported back to moderators.
- **intents.py**: inbound command intents, outcomes and outbound events.
- **platform.py**: protocols for the chat platform and the notification sink.
- **dispatcher.py**: validate, authorize, execute, record and notify for
  every moderation command.
"""
