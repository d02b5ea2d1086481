#!/usr/bin/env python3
"""
Convenience entry point for running slotengine directly.

Usage: python slotengine_cli.py [command] [options]
"""

from slotengine.cli.app import app

if __name__ == "__main__":
    app()
