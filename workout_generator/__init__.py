"""
Validated AI workout generation: prompt, model call, validation and repair.
"""

__version__ = "0.1.0"
