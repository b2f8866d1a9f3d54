"""
Rental core: contract lifecycle, monthly billing, rent adjustment and
owner notifications for Thai property rentals.
"""

__version__ = "0.1.0"
