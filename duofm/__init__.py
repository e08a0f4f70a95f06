"""
duofm - dual-pane keyboard-driven file manager.
"""

__version__ = '0.3.0'
