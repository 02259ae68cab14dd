"""Source fetch stage.

This package materializes registry versions into the local collections
root, one directory per collection version.
"""
