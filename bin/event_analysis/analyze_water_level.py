"""
Run event analysis on a water-level file from a source checkout.

Usage::

    python bin/event_analysis/analyze_water_level.py data.txt \
        --method harmonic --confidence Medium --xlsx-out out/analysis.xlsx

Equivalent to the installed ``tidewatch-analyze`` command.
"""
import sys

from tidewatch.cli import main

if __name__ == '__main__':
    sys.exit(main())
