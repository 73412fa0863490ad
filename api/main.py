"""Thin wrapper for the hosting entrypoint."""

from __future__ import annotations

from claimrisk.api.main import app

__all__ = ["app"]
