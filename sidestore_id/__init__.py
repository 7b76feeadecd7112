"""Top-level package for the SideStore identity & review-attestation API."""

__all__ = [
    "APP_ENV",
    "SUPABASE_URL",
    "SUPABASE_KEY",
]

from dotenv import load_dotenv
import os
load_dotenv()

# Environment variables
SUPABASE_URL = os.environ.get("SUPABASE_URL")
SUPABASE_KEY = os.environ.get("SUPABASE_KEY")

APP_ENV = os.getenv("APP_ENV", "production")
