"""HTTP snapshot endpoints."""

from schoolpay.api.app import create_app

__all__ = ["create_app"]
