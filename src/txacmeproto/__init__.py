"""
ACME protocol client operations for Twisted.
"""
__version__ = '0.1.0'
