"""Deterministic leg selection for correlated player-prop parlays."""

__version__ = "0.1.0"
