"""
Garage admin core: controllers, validation and REST clients for the garage
back-office.
"""

__version__ = "1.0.0"
