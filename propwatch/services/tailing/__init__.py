"""Tailing analysis module."""

from .analyzer import RiskThresholds, TailingAnalyzer, tailing_key

__all__ = ["RiskThresholds", "TailingAnalyzer", "tailing_key"]
