from callrelay.auth.codes import AuthCodeIssuer
from callrelay.auth.registration import RegistrationService
from callrelay.auth.tokens import TokenClaims, TokenPair, TokenService

__all__ = [
    "AuthCodeIssuer",
    "RegistrationService",
    "TokenClaims",
    "TokenPair",
    "TokenService",
]
