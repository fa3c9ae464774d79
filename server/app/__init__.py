"""Parlance server package; loads .env files before settings are read."""
from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv


_SERVER_DIR = Path(__file__).resolve().parent.parent

# .env.local wins over .env so API keys can stay out of the shared file.
load_dotenv(_SERVER_DIR / ".env")
load_dotenv(_SERVER_DIR / ".env.local", override=True)
