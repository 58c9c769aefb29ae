#!/usr/bin/env python3
"""
Main entry point for streamauth
"""

from streamauth.main import run

if __name__ == "__main__":
    run()
