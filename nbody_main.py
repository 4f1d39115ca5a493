#!/usr/bin/env python3
"""
Convenience entry point for the N-body frame simulator.

Usage:
    python nbody_main.py                              # Defaults from config/nbody.py
    python nbody_main.py --scene binary_system -n 2k  # Scene and body count
    python nbody_main.py --solver fmm                 # Tree accelerator
    python nbody_main.py --help                       # All options
"""

import sys

from tools.simulate import main

if __name__ == "__main__":
    sys.exit(main())
