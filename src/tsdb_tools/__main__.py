"""
Entry point for running tsdb_tools as a module.

Usage:
    python -m tsdb_tools influx to-csv metrics.lp --output metrics.csv
    python -m tsdb_tools influx from-csv metrics.csv --output metrics.lp
    python -m tsdb_tools influx validate metrics.lp
    python -m tsdb_tools info
"""

from .cli import main

if __name__ == "__main__":
    main()
