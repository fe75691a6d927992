"""EatNow ordering client: cart, checkout and branch order feed."""

__version__ = "0.3.0"
