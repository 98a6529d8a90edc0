# jyotish/version.py
from __future__ import annotations
import os

# Single place to bump the library version (overridable via env for CI/preview)
VERSION = os.getenv("JYOTISH_VERSION", "0.1.0")
