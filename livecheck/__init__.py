"""
Challenge-response liveness verification for selfie capture
"""
__version__ = "1.0.0"
