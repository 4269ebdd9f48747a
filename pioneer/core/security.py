from jose import jwe
from pydantic import BaseModel

from pioneer.core.exceptions import MissingPublicKeyError


class PublicKey(BaseModel):
    """RSA public key used to encrypt ping data.

    ``key`` is either a JWK dict (``{"kty": "RSA", "n": ..., "e": ...}``) or a
    PEM encoded string. ``id`` is reported in pings as ``encryptionKeyId``.
    """

    id: str
    key: dict | str


def get_public_key(env: str, keys: dict[str, PublicKey] | None = None) -> PublicKey:
    """Return the public key configured for a telemetry environment."""
    if keys is None:
        from pioneer.core.config import settings

        keys = settings.PUBLIC_KEYS
    try:
        return keys[env]
    except KeyError:
        raise MissingPublicKeyError(f"No public key configured for telemetry env: {env}")


class Encrypter:
    """Produces JWE compact serializations for a single public key."""

    def __init__(
        self,
        public_key: PublicKey,
        algorithm: str = "RSA-OAEP",
        encryption: str = "A256GCM",
    ) -> None:
        self.public_key = public_key
        self.algorithm = algorithm
        self.encryption = encryption

    async def encrypt(self, plaintext: str) -> str:
        token = jwe.encrypt(
            plaintext.encode("utf-8"),
            self.public_key.key,
            encryption=self.encryption,
            algorithm=self.algorithm,
            kid=self.public_key.id,
        )
        return token.decode("ascii")
