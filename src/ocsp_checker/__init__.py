"""
ocsp_checker — OCSP response validation.

Checks that an OCSP response is successful, echoes the request nonce, is
signed by a responder certificate that chains to a trust anchor, and maps each
certificate serial number to GOOD / REVOKED / UNKNOWN.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"
