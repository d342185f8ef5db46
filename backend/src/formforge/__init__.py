"""FormForge — schema-driven forms with structural and advisory validation."""

__version__ = "0.1.0"
