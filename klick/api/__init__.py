"""
HTTP API for product submission and admin review.
"""
