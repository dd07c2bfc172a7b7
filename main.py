#!/usr/bin/env python3
"""
ChunkSub Entry Point Script

This script initializes the CLI handler and runs caption generation.
"""

import sys
from chunksub.cli import CLIHandler

if __name__ == "__main__":
    if sys.version_info < (3, 8):
        sys.stderr.write("ChunkSub requires Python 3.8 or later.\n")
        sys.exit(1)

    cli = CLIHandler()
    cli.run()
