"""
zotasigner
Request signing for the Zota payment-gateway API family.

Intercepts outbound requests (through a mitmproxy addon), computes the
per-endpoint SHA-256 signatures from merchant credential profiles and verifies
signatures on inbound callbacks and final redirects.
"""

__version__ = "0.3.0"
