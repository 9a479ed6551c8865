"""Swift Jobs: freelancer matching, match holds and escrow lifecycle service."""

__version__ = "0.1.0"
