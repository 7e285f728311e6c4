"""
Notify package: delivery of build notifications to CloudAEye.
"""
