from common.settings import Settings

def make_settings(**overrides) -> Settings:
    """Settings for an isolated in-memory ledger with cheap password hashing"""
    values = dict(
        database_url="sqlite://",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        store_timeout_seconds=10.0,
        log_level="WARNING",
    )
    values.update(overrides)
    return Settings(**values)
