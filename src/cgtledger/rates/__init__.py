from .base import RateQuote, RateSource
from .frankfurter import FrankfurterClient
from .fx import FxTable

__all__ = ["RateQuote", "RateSource", "FrankfurterClient", "FxTable"]
