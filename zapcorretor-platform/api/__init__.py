"""ZapCorretor WhatsApp connection API."""

__version__ = "0.3.0"
