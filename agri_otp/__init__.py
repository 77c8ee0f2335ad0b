"""
One-time passcode issuance and verification for the Smart Agricultural
management backend.
"""

__version__ = "1.0.0"
