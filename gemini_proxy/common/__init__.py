"""
Common utilities shared by the proxy layers.
"""
