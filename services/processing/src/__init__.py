"""
ISD Processing Service

Streaming transform of NOAA ISD-Lite station files.
Parses fixed-width records, rescales them, and merges every station
of a year into a single gzipped CSV archive.
"""

__version__ = "0.1.0"
