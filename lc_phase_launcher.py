#!/usr/bin/env python3
"""
Launcher for LC Phase.
Runs the command line analysis from a source checkout without installing the package.
"""
import sys
import os

# Add the src directory to the Python path if needed
src_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

# The import needs to happen after the path setup
from LC_Phase.lc_phase_the_file import main

if __name__ == "__main__":
    main()
