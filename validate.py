#!/usr/bin/env python3
"""
Convenience entry point for accelerator validation.

Usage:
    python validate.py                    # Default schedule
    python validate.py --levels 12        # Smaller schedule
    python validate.py --mode tree        # Score tree mode instead of fmm
"""

import sys

from tools.validate import main

if __name__ == "__main__":
    sys.exit(main())
