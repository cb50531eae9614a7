"""
Debenture node package initializer

Keep this module lightweight. Do not import FastAPI or the runtime here,
so the core engines can be used without the HTTP stack.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
