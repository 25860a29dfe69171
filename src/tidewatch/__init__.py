"""
tidewatch: event analysis of coastal water-level records.
"""

__version__ = '0.1.0'
