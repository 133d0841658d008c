from dataclasses import dataclass
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from common.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from common.security import CredentialManager
from common.settings import Settings
from ledger_service.db import build_engine, build_sessionmaker
from ledger_service.models import Base
from ledger_service.services import AccountService, TransferService, session_scope

@dataclass
class ServiceContext:
    """Process-wide state, built once at startup and hung off app.state."""
    settings: Settings
    engine: Engine
    SessionLocal: sessionmaker
    credentials: CredentialManager
    store_breaker: CircuitBreaker
    accounts: AccountService
    transfers: TransferService

    def ping_store(self) -> bool:
        with session_scope(self.SessionLocal) as db:
            db.execute(text("SELECT 1"))
        return True

    def dispose(self):
        self.engine.dispose()

def build_context(settings: Settings) -> ServiceContext:
    engine = build_engine(settings.database_url, settings.store_timeout_seconds)
    Base.metadata.create_all(bind=engine)
    SessionLocal = build_sessionmaker(engine)
    credentials = CredentialManager(settings)
    breaker = CircuitBreaker("store", CircuitBreakerConfig())
    return ServiceContext(
        settings=settings,
        engine=engine,
        SessionLocal=SessionLocal,
        credentials=credentials,
        store_breaker=breaker,
        accounts=AccountService(SessionLocal, credentials, settings),
        transfers=TransferService(SessionLocal),
    )
