"""
scatter • Stripe

Windowing of an input stream into fixed-size, zero-padded stripes.
"""

from __future__ import annotations

from .reader import Stripe, StripeReader

__all__ = ["Stripe", "StripeReader"]
