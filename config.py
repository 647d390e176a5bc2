"""Environment configuration for EzRecycle Guide."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

# Guidance provider (Google Gemini)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
GEMINI_TIMEOUT_SECONDS = float(os.getenv("GEMINI_TIMEOUT_SECONDS", "25"))

# Google Maps Embed API, used only for the nearby recycling centers iframe
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")

# Backend URL the Streamlit front end talks to
API_BASE_DEFAULT = os.getenv("EZRECYCLE_API_URL", "http://localhost:8000")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Set up root logging once for the backend or the Streamlit app."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
