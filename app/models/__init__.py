from app.models.base import Base
from app.models.user import User, Student
from app.models.accounting import BankAccount, Transaction, Expense, RecurringExpense
from app.models.billing import Quote, PaymentSchedule, Mission
from app.models.founders import AdminPosition, Distribution, FounderShare

__all__ = [
    "Base",
    "User",
    "Student",
    "BankAccount",
    "Transaction",
    "Expense",
    "RecurringExpense",
    "Quote",
    "PaymentSchedule",
    "Mission",
    "AdminPosition",
    "Distribution",
    "FounderShare",
]
