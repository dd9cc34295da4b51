"""
Question bank converter: TA algorithm statements to the SW dialect.
"""
__version__ = "1.0.0"
