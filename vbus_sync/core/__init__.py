"""
Core building blocks: time ranges, constants, errors and formatting.
"""
