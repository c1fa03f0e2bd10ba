"""
External data source clients.
"""
