"""HTTP API."""

from formforge.api.app import app

__all__ = ["app"]
