"""
FamHub utilities
"""
