# product_visuals/utils/auth.py
"""
Bearer tokens for the event stream: `<owner_id>.<hex hmac-sha256(owner_id)>`.

Issuing tokens belongs to the account service; this module only needs to
agree with it on the format and the shared secret.
"""
import hashlib
import hmac

from product_visuals.data.settings import settings


def _secret(secret: str | None) -> bytes:
    return (secret or settings.auth.token_secret.get_secret_value()).encode("utf-8")


def sign(owner_id: str, secret: str | None = None) -> str:
    return hmac.new(_secret(secret), owner_id.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_token(owner_id: str, secret: str | None = None) -> str:
    if not owner_id or "." in owner_id:
        raise ValueError("owner_id must be non-empty and must not contain '.'")
    return f"{owner_id}.{sign(owner_id, secret)}"


def verify_token(token: str | None, secret: str | None = None) -> str | None:
    """Returns the owner id for a valid token, None for anything else."""
    if not token or "." not in token:
        return None
    owner_id, _, signature = token.rpartition(".")
    if not owner_id:
        return None
    if not hmac.compare_digest(signature.encode("utf-8"), sign(owner_id, secret).encode("utf-8")):
        return None
    return owner_id


def bearer_from_header(header: str | None) -> str | None:
    if not header:
        return None
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()
