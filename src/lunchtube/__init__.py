"""LunchTube: lunch-break video picks from your YouTube subscriptions."""

__version__ = "0.1.0"
