"""Exploratory feature analysis."""

from .correlation import CorrelationAnalyzer

__all__ = ["CorrelationAnalyzer"]
