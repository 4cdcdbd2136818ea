"""
Utility modules for the BaaS proxy
"""
