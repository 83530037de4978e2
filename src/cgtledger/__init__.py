from .portfolio import Portfolio

__all__ = ["Portfolio"]
