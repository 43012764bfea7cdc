"""
BARBER PROMO — WhatsApp Claim Hand-off

Pure formatting: turns a coupon, a name and a phone number into a
pre-filled https://wa.me/ link. Nothing here is awaited or validated
beyond the minimum digit count that enables the claim button.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote

from promo_config.settings import PromoSettings

WHATSAPP_BASE = "https://wa.me/"
NO_NAME = "(sin nombre)"

# characters encodeURIComponent leaves untouched
_URI_COMPONENT_SAFE = "-_.!~*'()"


def digits_only(value: str) -> str:
    return re.sub(r"\D+", "", value or "")


def normalize_phone(phone: str, country_code: str = None) -> str:
    """Digits only, with the default country code prefixed when absent."""
    cc = digits_only(country_code if country_code is not None else PromoSettings.COUNTRY_CODE)
    num = digits_only(phone)
    if not num:
        return ""
    return num if num.startswith(cc) else f"{cc}{num}"


def can_claim(coupon: Optional[str], phone: str, min_digits: int = None) -> bool:
    """Whether the claim action is enabled."""
    needed = PromoSettings.MIN_PHONE_DIGITS if min_digits is None else min_digits
    return bool(coupon) and len(digits_only(phone)) >= needed


def claim_message(coupon: str, name: str = "", brand: str = None, game_label: str = "") -> str:
    brand = brand or PromoSettings.BRAND_NAME
    game = f" del juego {game_label}" if game_label else ""
    return (
        f"Hola, quiero reclamar mi cupón {coupon}{game} de {brand}. "
        f"Mi nombre es {name.strip() if name and name.strip() else NO_NAME}."
    )


def whatsapp_url(coupon: Optional[str], name: str, phone: str, brand: str = None,
                 game_label: str = "", country_code: str = None) -> Optional[str]:
    """wa.me deep link, or None when there is no coupon or no phone digits."""
    if not coupon:
        return None
    full = normalize_phone(phone, country_code)
    if not full:
        return None
    text = claim_message(coupon, name, brand, game_label)
    return f"{WHATSAPP_BASE}{full}?text={quote(text, safe=_URI_COMPONENT_SAFE)}"
