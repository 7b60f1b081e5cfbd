#!/usr/bin/env python
"""
Run meta-ITH
This script runs the meta-ITH command-line pipeline
"""

from meta_ith.main import run

if __name__ == "__main__":
    run()
