"""Centralized color constants (GitHub Dark palette)."""

# Core palette
ACCENT = "#7FA6D9"
BORDER = "#30363D"
DIM = "#6E7681"
TEXT = "#E6EDF3"
MUTED = "#8B949E"

# Semantic colors
SUCCESS = "#57DB9C"
WARN = "#E3B341"
ERROR = "#F85149"
INFO = "#58A6FF"

# Prompt / input
PROMPT = "#B7C6D8"

# Chat and explorer
USER_BORDER = "#58A6FF"
FOLDER = "#E3B341"
FILE = "#E6EDF3"
