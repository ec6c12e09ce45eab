"""Instance lifecycle services and the WhatsApp gateway client."""
