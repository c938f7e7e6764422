"""setup-ai: scaffold AI-agent development configuration for a project."""

__version__ = "0.4.0"
