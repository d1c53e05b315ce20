"""Iteration loop driving CLI coding agents through prd.json stories."""

__version__ = "0.1.0"
