"""
Shared helpers: naming rules, formatting, and structured logging.
"""
