#!/usr/bin/env python3
"""Convenience runner for the Garmin Connect exporter.

Usage:
    python run.py --count all
"""
import sys

from garmin_export.main import main

if __name__ == "__main__":
    sys.exit(main())
