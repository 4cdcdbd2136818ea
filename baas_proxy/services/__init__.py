"""
Business logic for the BaaS proxy
"""
