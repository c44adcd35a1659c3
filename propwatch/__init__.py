"""
PropWatch
Prop line movement and public betting sentiment tracking.
"""

__version__ = "1.0.0"
