"""Packed framebuffer access."""
