"""
Store adapters over one SQLAlchemy session.

Neither adapter commits; the caller owns the transaction boundary so that a
transfer's debit, credit and ledger insert land together or not at all.
"""
from typing import List, Optional
from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from common.error_handling import DuplicateKey
from ledger_service.models import Account, Transaction

class AccountStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[Account]:
        return self.db.execute(select(Account).where(Account.email == email)).scalars().first()

    def find_by_payment_id(self, payment_id: str) -> Optional[Account]:
        return self.db.execute(select(Account).where(Account.payment_id == payment_id)).scalars().first()

    def insert(self, account: Account) -> Account:
        self.db.add(account)
        self._flush()
        return account

    def update(self, account: Account) -> Account:
        self.db.merge(account)
        self._flush()
        return account

    def debit(self, payment_id: str, amount: int) -> bool:
        """Decrement balance only if it covers amount; False when the guard rejects it."""
        result = self.db.execute(
            update(Account)
            .where(Account.payment_id == payment_id, Account.balance >= amount)
            .values(balance=Account.balance - amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def credit(self, payment_id: str, amount: int) -> bool:
        result = self.db.execute(
            update(Account)
            .where(Account.payment_id == payment_id)
            .values(balance=Account.balance + amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _flush(self):
        try:
            self.db.flush()
        except IntegrityError as e:
            raise DuplicateKey(str(e.orig)) from e

class LedgerStore:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, transaction: Transaction) -> Transaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def find_by_payment_id(self, payment_id: str) -> List[Transaction]:
        stmt = (
            select(Transaction)
            .where(or_(Transaction.sender_payment_id == payment_id,
                       Transaction.receiver_payment_id == payment_id))
            .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())
