#!/usr/bin/env python3
"""
Launcher for running anirip from a source checkout without installing it.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from anirip.cli import main

if __name__ == '__main__':
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nStopped")
        sys.exit(130)
