"""
Command line tools for working with block archives.
"""
