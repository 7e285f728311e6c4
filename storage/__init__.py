"""
Storage package: credential store, build cache and retry helpers.
"""
