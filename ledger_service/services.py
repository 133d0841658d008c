import logging
from contextlib import contextmanager
from typing import List, NamedTuple
from sqlalchemy.exc import DBAPIError, IntegrityError
from common.error_handling import (
    AccountExists, AccountNotFound, DuplicateKey, InsufficientBalance, InvalidAmount,
    InvalidCredentials, InvalidRecipient, PaymentIdCollision, StoreUnavailable,
)
from common.retry import RetryConfig, retry_call
from common.security import CredentialManager
from common.settings import Settings
from ledger_service.identifiers import generate_payment_id
from ledger_service.models import Account, Transaction
from ledger_service.stores import AccountStore, LedgerStore

logger = logging.getLogger(__name__)

@contextmanager
def session_scope(SessionLocal):
    """One database transaction; commits on success, rolls back on any error."""
    try:
        with SessionLocal.begin() as db:
            yield db
    except IntegrityError as e:
        raise DuplicateKey(str(e.orig)) from e
    except DBAPIError as e:
        raise StoreUnavailable(f"Store error: {e.orig}") from e

class LoginResult(NamedTuple):
    token: str
    payment_id: str
    balance: int

class AccountService:
    def __init__(self, SessionLocal, credentials: CredentialManager, settings: Settings):
        self.SessionLocal = SessionLocal
        self.credentials = credentials
        self.settings = settings
        self.collision_retry = RetryConfig(
            max_attempts=settings.payment_id_max_attempts,
            retryable_exceptions=[PaymentIdCollision],
        )

    def register(self, name: str, email: str, password: str) -> str:
        """Create an account with the starting balance and return its payment id."""
        with session_scope(self.SessionLocal) as db:
            if AccountStore(db).find_by_email(email):
                raise AccountExists()

        password_hash = self.credentials.hash_password(password)
        account = retry_call(self._insert_account, self.collision_retry, name, email, password_hash)
        logger.info(f"✅ Registered account {account.payment_id}")
        return account.payment_id

    def _insert_account(self, name: str, email: str, password_hash: str) -> Account:
        account = Account(
            name=name,
            email=email,
            password_hash=password_hash,
            payment_id=generate_payment_id(self.settings.payment_id_domain),
            balance=self.settings.starting_balance,
        )
        try:
            with session_scope(self.SessionLocal) as db:
                AccountStore(db).insert(account)
        except DuplicateKey:
            # either a concurrent signup took the email, or the generated id collided
            with session_scope(self.SessionLocal) as db:
                if AccountStore(db).find_by_email(email):
                    raise AccountExists()
            raise PaymentIdCollision(f"payment id {account.payment_id} already taken")
        return account

    def authenticate(self, email: str, password: str) -> LoginResult:
        with session_scope(self.SessionLocal) as db:
            account = AccountStore(db).find_by_email(email)

        if account is None or not self.credentials.verify_password(password, account.password_hash):
            raise InvalidCredentials()

        token = self.credentials.issue_token(account.id, account.payment_id)
        return LoginResult(token=token, payment_id=account.payment_id, balance=account.balance)

    def get_public_profile(self, payment_id: str) -> Account:
        with session_scope(self.SessionLocal) as db:
            account = AccountStore(db).find_by_payment_id(payment_id)
        if account is None:
            raise AccountNotFound()
        return account

class TransferService:
    def __init__(self, SessionLocal):
        self.SessionLocal = SessionLocal

    def transfer(self, sender_payment_id: str, receiver_payment_id: str, amount: int) -> Transaction:
        """Move amount from sender to receiver and append the ledger entry, atomically."""
        if amount <= 0:
            raise InvalidAmount()
        if sender_payment_id == receiver_payment_id:
            raise InvalidRecipient()

        with session_scope(self.SessionLocal) as db:
            accounts = AccountStore(db)
            sender = accounts.find_by_payment_id(sender_payment_id)
            receiver = accounts.find_by_payment_id(receiver_payment_id)
            if sender is None or receiver is None:
                raise AccountNotFound()
            if sender.balance < amount:
                raise InsufficientBalance()

            self._move(accounts, sender_payment_id, receiver_payment_id, amount)
            entry = LedgerStore(db).insert(Transaction(
                sender_payment_id=sender_payment_id,
                receiver_payment_id=receiver_payment_id,
                amount=amount,
            ))

        logger.info(f"💰 Transfer {sender_payment_id} -> {receiver_payment_id}: {amount}")
        return entry

    def _move(self, accounts: AccountStore, sender_payment_id: str, receiver_payment_id: str, amount: int):
        # Rows are touched in payment_id order so opposing transfers cannot deadlock.
        steps = [
            (sender_payment_id, lambda: accounts.debit(sender_payment_id, amount), InsufficientBalance),
            (receiver_payment_id, lambda: accounts.credit(receiver_payment_id, amount), AccountNotFound),
        ]
        for _, apply, failure in sorted(steps, key=lambda step: step[0]):
            if not apply():
                # row changed between the read above and this update
                raise failure()

    def history(self, payment_id: str) -> List[Transaction]:
        with session_scope(self.SessionLocal) as db:
            return LedgerStore(db).find_by_payment_id(payment_id)
