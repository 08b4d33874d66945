"""
FamHub - Exchange rate service
"""
__version__ = "1.0.0"
