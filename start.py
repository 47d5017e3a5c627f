"""
Chartscan - Entry Point
Pattern scan of OHLCV CSV files.
"""
import sys

from chartscan.cli import main

if __name__ == "__main__":
    sys.exit(main())
