#!/usr/bin/env python3
"""Convenience runner for replaying a recorded walk as a territory claim.

Usage:
    python run.py walk.gpx --output maps/walk.html
"""
from territory_claim.tools.replay_claim import main

if __name__ == "__main__":
    raise SystemExit(main())
