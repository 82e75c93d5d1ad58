"""
Authentication module for Ride Channels.

Only credential verification lives here; issuing tokens is the job of the
REST login service.
"""

from .token_validation import AuthenticatedIdentity, authenticate_token, extract_bearer_token

__all__ = ["AuthenticatedIdentity", "authenticate_token", "extract_bearer_token"]
