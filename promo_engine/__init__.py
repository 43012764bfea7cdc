"""
BARBER PROMO — Instant-Win Engine

Outcome determination and reveal synchronization for the scratch, plinko,
wheel and slot promo games.
"""
