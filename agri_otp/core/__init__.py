"""
OTP core: code generation, stores, verification engine and janitor.
"""
