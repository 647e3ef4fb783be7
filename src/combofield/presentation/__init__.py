"""Presentation layer: Textual widgets and the demo application."""
