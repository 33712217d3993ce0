# notecase/config.py

import os
from typing import Optional

from dotenv import load_dotenv

from notecase.types import Settings


def load_settings(owner_id: Optional[str] = None) -> Settings:
    """
    Load Supabase credentials and the default owner from the environment.

    Variables are read from the process environment after loading a local
    `.env` file (existing variables are not overridden):

        SUPABASE_URL
        SUPABASE_KEY                (falls back to SUPABASE_SERVICE_ROLE_KEY)
        NOTECASE_OWNER_ID           (used when `owner_id` is not passed)

    Raises
    ------
    RuntimeError
        If the URL or key is missing.
    """
    load_dotenv()

    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY")

    if not url or not key:
        raise RuntimeError(
            "Supabase credentials not found. Ensure SUPABASE_URL and SUPABASE_KEY "
            "are set in your environment or .env file."
        )

    return {
        "supabase_url": url,
        "supabase_key": key,
        "owner_id": owner_id or os.getenv("NOTECASE_OWNER_ID") or None,
    }
