"""
Cogs for the Casekeeper bot.

Each module defines a cog class and a ``setup(bot, services)`` function. The
cogs are loaded explicitly in main.py.
"""
