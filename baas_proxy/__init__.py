"""
BaaS proxy: credential-hiding relay between a mobile app and a BaaS platform
"""

__version__ = "1.0.0"
