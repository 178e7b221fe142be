"""Decoder utilities: error taxonomy, validation and console logging."""
