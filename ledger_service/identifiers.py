import secrets

PAYMENT_ID_DOMAIN = "fastpay"

def generate_payment_id(domain: str = PAYMENT_ID_DOMAIN) -> str:
    """Return a fresh payment identifier such as ``3f9a01bc@fastpay``.

    Uniqueness is not checked here; the accounts table's unique index is the
    authority and registration retries on a collision.
    """
    return f"{secrets.token_bytes(4).hex()}@{domain}"
