"""folio-prices: historical price acquisition and caching for a portfolio tracker."""

__version__ = "0.1.0"
