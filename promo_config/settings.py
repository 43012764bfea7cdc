"""
Barber Promo - Runtime Settings

Environment-driven knobs shared by every game mode. Values are read once at
import time after loading a local .env file.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent.parent


class PromoSettings:

    # --- Anti-abuse ---
    COOLDOWN_HOURS = float(os.getenv("PROMO_COOLDOWN_HOURS", "6"))  # one completed round per window per device

    # --- Local PlayRecord storage ---
    STATE_DIR = Path(os.getenv("PROMO_STATE_DIR", str(Path.home() / ".barber_promo"))).expanduser()
    STATE_FILE = os.getenv("PROMO_STATE_FILE", "play_record.json")

    # --- Claim hand-off ---
    COUNTRY_CODE = os.getenv("PROMO_COUNTRY_CODE", "52")  # MX
    MIN_PHONE_DIGITS = int(os.getenv("PROMO_MIN_PHONE_DIGITS", "10"))
    BRAND_NAME = os.getenv("PROMO_BRAND_NAME", "Caballeros Barber Club")

    # --- Logging ---
    LOG_LEVEL = os.getenv("PROMO_LOG_LEVEL", "INFO").upper()

    # --- Reveal driver ---
    FRAME_MS = float(os.getenv("PROMO_FRAME_MS", "16"))

    @classmethod
    def state_path(cls) -> Path:
        return cls.STATE_DIR / cls.STATE_FILE

    @classmethod
    def summary(cls) -> dict:
        return {
            "cooldown_hours": cls.COOLDOWN_HOURS,
            "state_path": str(cls.state_path()),
            "country_code": cls.COUNTRY_CODE,
            "min_phone_digits": cls.MIN_PHONE_DIGITS,
            "brand_name": cls.BRAND_NAME,
            "log_level": cls.LOG_LEVEL,
            "frame_ms": cls.FRAME_MS,
        }
