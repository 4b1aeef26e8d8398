#!/usr/bin/env python3
"""
Entry point for the upload CLI.

Run with: python -m upload_tool
"""

from .cli import cli

if __name__ == '__main__':
    cli()
