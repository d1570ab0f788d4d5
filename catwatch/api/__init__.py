"""Catwatch — HTTP trigger API."""

from catwatch.api.app import create_app

__all__ = ["create_app"]
