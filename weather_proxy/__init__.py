"""
Weather proxy: current conditions for a named city.
"""

__version__ = "1.0.0"
