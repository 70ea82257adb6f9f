"""vaultkeep - keep vault links and attachments consistent."""

__version__ = "0.4.0"
