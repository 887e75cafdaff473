"""Remittance provider rate tracker."""

__version__ = "0.1.0"
