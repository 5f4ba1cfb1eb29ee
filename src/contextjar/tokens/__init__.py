"""Token estimation."""

from contextjar.tokens.estimator import TokenEstimator

__all__ = ["TokenEstimator"]
