"""
Tool functions for template processing.
"""
