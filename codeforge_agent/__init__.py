"""codeforge-agent: AI-first code editor for your terminal."""

__version__ = "1.0.0"
