"""
Upstream authentication for the proxy service.

- token_manager: cached bearer credential with expiry-driven renewal against
  ``POST /v3/authenticate``.
"""

from .token_manager import Credential, TokenManager

__all__ = ["Credential", "TokenManager"]
