"""Compile unikernel packaging descriptions into filesystem-assembly graphs."""

__version__ = "0.1.0"
