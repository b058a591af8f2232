from typing import Optional
from decimal import Decimal
from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from src.config import settings
from src.models import MetroAccount, AccountTransaction
from src.accounts.schemas import TransactionType
from src.exceptions import InsufficientBalance
from src.logger_config import logger

class AccountService:
    """Prepaid metro balance used by the balance-payment booking flow"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_account(self, phone: str) -> Optional[MetroAccount]:
        return self.db.query(MetroAccount).filter(MetroAccount.phone == phone).first()
    
    def get_or_create_account(self, phone: str, name: Optional[str] = None) -> MetroAccount:
        """Get the phone's account, opening one with the default balance on first use"""
        account = self.get_account(phone)
        if account:
            if name and account.name != name:
                account.name = name
                self.db.commit()
            return account
        
        account = MetroAccount(
            phone=phone,
            name=name,
            balance=settings.DEFAULT_ACCOUNT_BALANCE
        )
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError:
            # Opened concurrently by another message from the same phone
            self.db.rollback()
            return self.get_account(phone)
        
        logger.info(f"Metro account opened for {phone} with balance {account.balance}")
        return account
    
    def get_balance(self, phone: str) -> Decimal:
        account = self.get_account(phone)
        if not account:
            return Decimal("0")
        self.db.refresh(account)
        return Decimal(str(account.balance))
    
    def deduct(
        self,
        phone: str,
        amount: Decimal,
        description: str,
        booking_id: Optional[str] = None
    ) -> Decimal:
        """Atomically debit the balance and write a ledger row. Does not commit.

        Raises InsufficientBalance when the balance does not cover the amount.
        """
        table = MetroAccount.__table__
        result = self.db.execute(
            update(table)
            .where(table.c.phone == phone, table.c.balance >= amount)
            .values(balance=table.c.balance - amount)
        )
        if result.rowcount != 1:
            raise InsufficientBalance(self.get_balance(phone), amount)
        
        new_balance = self.get_balance(phone)
        self.db.add(AccountTransaction(
            phone=phone,
            amount=amount,
            transaction_type=TransactionType.DEBIT.value,
            description=description,
            booking_id=booking_id,
            balance_after=new_balance
        ))
        self.db.flush()
        
        logger.info(f"Debited {amount} from {phone}, new balance {new_balance}")
        return new_balance
