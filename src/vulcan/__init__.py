"""
Vulcan API - state benefit voucher program backend.
"""

__version__ = "0.1.0"
