"""webbase — server-rendered web application template with session-backed auth."""

__version__ = "0.1.0"
