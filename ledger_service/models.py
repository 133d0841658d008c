from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, BigInteger, DateTime, CheckConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()

def _utcnow():
    return datetime.now(timezone.utc)

class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    payment_id = Column(String(64), nullable=False, unique=True, index=True)  # immutable once issued
    balance = Column(BigInteger, nullable=False, default=1000)

    def __repr__(self):
        return f"<Account {self.payment_id} balance={self.balance}>"

class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),)

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    # plain strings, not foreign keys: a ledger entry outlives whatever it points at
    sender_payment_id = Column(String(64), nullable=False, index=True)
    receiver_payment_id = Column(String(64), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
