"""
VEMS booking core: booking lifecycle and OTP-gated fulfilment of diagnostic services.
"""

__version__ = "1.0.0"
