"""
quantscore: multi-source market data composite scoring.

Fetches daily bars, estimates and positioning data from fallback provider
chains, turns indicators into bounded component scores and combines them
into a classified, confidence-rated composite result per symbol and date.
"""

__version__ = "0.1.0"
