import time, jwt, bcrypt
from typing import Optional
from pydantic import BaseModel
from common.error_handling import InvalidToken, PasswordTooLong
from common.settings import Settings

ALGO = "HS256"
# bcrypt only looks at this many bytes and refuses longer input
MAX_PASSWORD_BYTES = 72

class TokenClaims(BaseModel):
    account_id: str
    payment_id: str
    expires_at: int

class CredentialManager:
    """Password hashing and session tokens, bound to one Settings instance."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def hash_password(self, plaintext: str) -> str:
        secret = plaintext.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            raise PasswordTooLong(field="password")
        salt = bcrypt.gensalt(rounds=self.settings.bcrypt_rounds)
        return bcrypt.hashpw(secret, salt).decode("utf-8")

    def verify_password(self, plaintext: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # not a bcrypt hash
            return False

    def issue_token(self, account_id, payment_id: str, now: Optional[int] = None) -> str:
        now = int(time.time()) if now is None else now
        payload = {
            "iss": self.settings.jwt_issuer,
            "sub": str(account_id),
            "upi_id": payment_id,
            "iat": now,
            "exp": now + self.settings.jwt_ttl_seconds,
        }
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=ALGO)

    def validate_token(self, token: str) -> TokenClaims:
        options = {"require": ["exp", "iat", "iss", "sub"]}
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[ALGO],
                options=options,
                issuer=self.settings.jwt_issuer,
            )
        except jwt.PyJWTError as e:
            raise InvalidToken() from e
        if "upi_id" not in payload:
            raise InvalidToken()
        return TokenClaims(account_id=payload["sub"], payment_id=payload["upi_id"], expires_at=payload["exp"])
