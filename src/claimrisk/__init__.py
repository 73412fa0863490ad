"""Claim aging and denial-risk scoring."""

__version__ = "0.1.0"
