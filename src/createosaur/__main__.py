"""
Entry point for running Createosaur as a module.

Usage:
    python -m createosaur generate "a red dinosaur"
"""

import sys

from createosaur.main import main

if __name__ == "__main__":
    sys.exit(main())
