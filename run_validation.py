#!/usr/bin/env python3
"""
Quick validation script for the QBiT simulator.

Runs the reference 25 m/s trim cruise and a hover position step and
prints the outcome. Run this to check the physics before longer studies.
"""

import sys
import os

# Add package to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from qbitsim.main import main


if __name__ == "__main__":
    print("QBiT Tail-Sitter Flight Simulator")
    print("Physics Validation")
    print()

    code = main(['--maneuver', 'trim-cruise', '--speed', '25', '--duration', '5'])
    if code == 0:
        code = main(['--maneuver', 'step-position', '--no-aero'])
    sys.exit(code)
