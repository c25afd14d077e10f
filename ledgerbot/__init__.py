"""LedgerBot: Discord slash commands that echo and record messages."""

__version__ = "0.1.0"
