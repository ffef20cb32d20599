"""Configuration constants for radial-mindmap."""

import os
from pathlib import Path

# Distance between concentric rings, in layout units.
RADIUS_STEP: float = 220

# Nodes at this depth or deeper are not offered for expansion.
MAX_DEPTH: int = 5

# Upper bound on ideas kept from a single generation response.
MAX_IDEAS: int = 5

# Seconds before an idea-generation request counts as failed.
DEFAULT_TIMEOUT: float = 30.0

DEFAULT_MODEL: str = "gemini-2.5-flash"

API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

# Environment variables checked for the API key, in order.
API_KEY_ENV_VARS: list[str] = ["GEMINI_API_KEY", "API_KEY"]

# API key location when no environment variable is set. First file found is used.
API_KEY_FILES: list[Path] = [
    Path("~/.config/radial-mindmap-key.txt").expanduser(),
    Path("~/.config/secret/gemini-api-key.txt").expanduser(),
    Path(f"/run/user/{os.getuid()}/gemini-api-key"),
]

# Cache directory, used only when --cache is passed.
API_CACHE_PREFIX: str = "/tmp/radial-mindmap-cache/cache-"
