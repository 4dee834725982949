"""Dust particles, planets, parameter files and disc forces on a polar grid."""

__version__ = "0.1.0"