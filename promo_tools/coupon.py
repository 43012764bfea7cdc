"""
BARBER PROMO — Coupon Issuer

Coupon format: PREFIX-YYYYMMDD-HHMM-XXXX
    PREFIX  game-mode tag (RSCA, PLNK, WHEL, BARB)
    stamp   local time, minute resolution
    XXXX    four characters from 0-9A-Z

Uniqueness is best-effort: two winners in the same minute collide with
probability 1/36^4. There is no issuance ledger; staff validate coupons
out of band when they are redeemed.
"""

from __future__ import annotations

import logging
import re
import secrets
from datetime import datetime
from typing import Callable, Optional

from promo_config.game_schema import COUPON_PREFIXES, GameMode

logger = logging.getLogger("barberpromo.coupon")

SUFFIX_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
SUFFIX_LENGTH = 4
STAMP_FORMAT = "%Y%m%d-%H%M"

COUPON_RE = re.compile(r"^(?P<prefix>[A-Z]{2,8})-(?P<stamp>\d{8}-\d{4})-(?P<suffix>[0-9A-Z]{4})$")


class CouponIssuer:
    """Mints coupon identifiers for winning outcomes."""

    def __init__(self, rng=None, clock: Optional[Callable[[], datetime]] = None):
        self._rng = rng or secrets.SystemRandom()
        self._clock = clock or datetime.now

    def issue(self, mode: GameMode | str, prefix: str = "", now: Optional[datetime] = None) -> str:
        mode = GameMode(mode)
        prefix = prefix or COUPON_PREFIXES[mode]
        stamp = (now or self._clock()).strftime(STAMP_FORMAT)
        suffix = "".join(self._rng.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
        coupon = f"{prefix}-{stamp}-{suffix}"
        logger.info(f"Coupon issued: {coupon} ({mode.value})")
        return coupon


def parse_coupon(coupon: str) -> Optional[dict]:
    """Split a coupon into prefix / stamp / suffix, or None if malformed."""
    m = COUPON_RE.match(coupon or "")
    if not m:
        return None
    parts = m.groupdict()
    try:
        parts["issued_at"] = datetime.strptime(parts["stamp"], STAMP_FORMAT)
    except ValueError:
        return None
    return parts
