"""PKCE (Proof Key for Code Exchange) manager for VK ID authorization.

Implements RFC 7636 parameter generation. VK ID requires PKCE with the
S256 method for the web authorization code flow.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from vkid_sso.models.errors import PKCEError
from vkid_sso.models.security import PKCEParameters

# 512 bits of randomness, 86 characters once base64url-encoded
VERIFIER_BYTES = 64


class PKCEManager:
    """Manages PKCE parameter generation for VK ID authorization attempts.

    This implementation follows RFC 7636 requirements:
    - Uses S256 code challenge method (SHA256 + base64url, no padding)
    - Generates code verifiers from a CSPRNG
    - Verifiers only use the unreserved character set
    """

    def generate_parameters(self) -> PKCEParameters:
        """Generate new PKCE parameters for one authorization attempt.

        Returns:
            PKCEParameters: Immutable verifier/challenge pair

        Raises:
            PKCEError: If parameter generation fails
        """
        try:
            code_verifier = self._generate_code_verifier()
            code_challenge = self.compute_challenge(code_verifier)

            return PKCEParameters(
                code_verifier=code_verifier,
                code_challenge=code_challenge,
                code_challenge_method="S256",
            )

        except Exception as e:
            raise PKCEError(f"Failed to generate PKCE parameters: {e}") from e

    @staticmethod
    def compute_challenge(code_verifier: str) -> str:
        """Derive the S256 code challenge from a code verifier.

        RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))

        Args:
            code_verifier: The code verifier to hash

        Returns:
            Base64url-encoded SHA256 hash of the verifier, without padding
        """
        digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

    def _generate_code_verifier(self) -> str:
        """Generate a cryptographically secure code verifier.

        ``token_urlsafe`` only emits ``[A-Za-z0-9_-]``, a subset of the
        RFC 7636 unreserved characters.
        """
        return secrets.token_urlsafe(VERIFIER_BYTES)
