"""
Request schemas and error types
"""
