"""
psym - profile symbolizer.

Replaces raw "0xADDR" entries in the string tables of a sampling-profiler
capture with function names resolved by addr2line against the libraries
the profiled process had loaded.
"""

__version__ = "0.3.0"
