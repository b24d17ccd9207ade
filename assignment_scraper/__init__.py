"""Headless-browser scraper for the Blackbaud student assignment center."""

__version__ = "0.1.0"
