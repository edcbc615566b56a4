"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class PaymentType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    PAYMENT = "payment"
    SYSTEM = "system"


class LedgerEntryType(str, Enum):
    # Payment requests
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    # Settlement (buyer / seller / platform)
    PURCHASE_PAYMENT = "PURCHASE_PAYMENT"
    SALE_EARNING = "SALE_EARNING"
    PLATFORM_COMMISSION = "PLATFORM_COMMISSION"
    # Manual admin adjustment
    ADMIN_CREDIT = "ADMIN_CREDIT"
    ADMIN_DEBIT = "ADMIN_DEBIT"


class ListingSort(str, Enum):
    NEWEST = "newest"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    POPULAR = "popular"
    RATING = "rating"


class PaymentSort(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    AMOUNT = "amount"


class NotificationFilter(str, Enum):
    ALL = "all"
    UNREAD = "unread"
    READ = "read"
