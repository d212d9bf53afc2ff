"""
Core template operations over the XML parts of a package.
"""
