"""examdesk - education management backend with AI-assisted evaluation."""

__version__ = "0.1.0"
