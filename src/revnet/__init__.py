"""Revnet deployer — hook composition and permission delegation for revnets."""

__version__ = "0.1.0"
