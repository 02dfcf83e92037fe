"""
Exception types raised by the detection engine and its collaborators.
"""


class PumpDetectorError(Exception):
    """Base class for all pump detector errors."""


class TransportError(PumpDetectorError):
    """An upstream fetch failed (network, timeout, HTTP status or malformed payload)."""


class InsufficientDataError(PumpDetectorError):
    """Not enough history samples to score a symbol. A skip signal, not a failure."""

    def __init__(self, symbol: str, price_samples: int, volume_samples: int):
        self.symbol = symbol
        self.price_samples = price_samples
        self.volume_samples = volume_samples
        super().__init__(
            f"{symbol}: need more history "
            f"({price_samples} price / {volume_samples} volume samples)"
        )


class ConfigurationError(PumpDetectorError):
    """The notification channel is not configured."""
