#!/usr/bin/env python3
"""
Launch the netstats agent from a source checkout.

Usage:
    python run_agent.py                       # Default config
    python run_agent.py --config path.yaml    # Custom config
    python run_agent.py --debug               # Debug logging
"""

from netstats.cli import main


if __name__ == "__main__":
    main()
