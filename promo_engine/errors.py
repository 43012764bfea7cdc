"""Error taxonomy shared by the outcome and reveal layers."""


class PromoError(Exception):
    """Base class for every error raised by the promo engine."""


class InvalidInput(PromoError, ValueError):
    """Malformed candidate weights or an inconsistent Outcome.

    Fatal to the call that raised it; never answered with a default index.
    """


class SurfaceUnavailable(PromoError):
    """The scratch overlay's drawing surface could not be acquired."""


class PlayRejected(PromoError):
    """A start request was refused. Not a fault: the game stays Ready."""


class ConsentRequired(PlayRejected):
    def __init__(self):
        super().__init__("Terms must be accepted before playing")


class CooldownActive(PlayRejected):
    def __init__(self, hours_remaining: float):
        self.hours_remaining = hours_remaining
        super().__init__(f"Next play available in {hours_remaining:.2f}h")
