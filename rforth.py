#!/usr/bin/env python3
"""
rforth entry point.

Usage: python rforth.py <sim|com|help> input.rf [options]
"""

from rforth.compiler import main

if __name__ == '__main__':
    main()
