"""
Core utilities shared across the supervisor backend: configuration, logging
setup, password hashing and rate limiting.
"""
