"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Account / ledger
  3xxx: Listing / purchase
  4xxx: Payment request
  5xxx: Notification
  6xxx: Category
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class NotFoundError(AppError):
    """Unknown account, listing, payment request or notification id."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 404)


# --- 1xxx: Auth/User ---

class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid email or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin access required", 403)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1007, f"User not found: {user_id}")


class WrongPasswordError(AppError):
    def __init__(self) -> None:
        super().__init__(1008, "Current password is incorrect", 400)


# --- 2xxx: Account / ledger ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required} xu, available {available} xu",
            422,
        )
        self.required = required
        self.available = available


class AccountNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Account not found for user {user_id}")


class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2003, f"Invalid amount: {detail}", 422)


class ContentionError(AppError):
    def __init__(self, key: str, attempts: int) -> None:
        super().__init__(
            2004,
            f"Concurrent update on {key} conflicted {attempts} times, retry later",
            409,
        )


class TransactionConflictError(AppError):
    """PostgreSQL aborted the transaction to break a deadlock or serialization conflict."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            2005,
            f"{operation} was aborted by a concurrent transaction ({reason}), retry later",
            409,
        )


# --- 3xxx: Listing / purchase ---

class ListingNotFoundError(NotFoundError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3001, f"Listing not found: {listing_id}")


class ListingUnavailableError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3002, f"Listing is not available: {listing_id}", 422)


class PriceMismatchError(AppError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            3003,
            f"Price changed: expected {expected} xu, current price is {actual} xu",
            409,
        )


class InvalidPurchaseError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3004, f"Invalid purchase: {detail}", 422)


class ListingHasPurchasesError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3005, f"Listing {listing_id} has purchases and cannot be deleted", 409)


class ListingForbiddenError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3006, f"Not the owner of listing {listing_id}", 403)


class ReviewNotAllowedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3007, f"Review not allowed: {detail}", 422)


class InvalidCategoryError(AppError):
    def __init__(self, slug: str) -> None:
        super().__init__(3008, f"Unknown or inactive category: {slug}", 422)


class CommentNotFoundError(NotFoundError):
    def __init__(self, comment_id: int) -> None:
        super().__init__(3009, f"Comment not found: {comment_id}")


class CommentForbiddenError(AppError):
    def __init__(self, comment_id: int) -> None:
        super().__init__(3010, f"Not the author of comment {comment_id}", 403)


# --- 4xxx: Payment request ---

class PaymentRequestNotFoundError(NotFoundError):
    def __init__(self, request_id: str) -> None:
        super().__init__(4001, f"Payment request not found: {request_id}")


class AlreadyProcessedError(AppError):
    def __init__(self, request_id: str, status: str) -> None:
        super().__init__(
            4002, f"Payment request {request_id} already processed (status={status})", 409
        )


class BankInfoRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(4003, "Bank account name, number and bank name are required", 422)


# --- 5xxx: Notification ---

class NotificationNotFoundError(NotFoundError):
    def __init__(self, notification_id: str) -> None:
        super().__init__(5001, f"Notification not found: {notification_id}")


# --- 6xxx: Category ---

class CategoryNotFoundError(NotFoundError):
    def __init__(self, category_id: int) -> None:
        super().__init__(6001, f"Category not found: {category_id}")


class CategoryExistsError(AppError):
    def __init__(self, field: str, value: str) -> None:
        super().__init__(6002, f"A category with {field} '{value}' already exists", 409)


class CategoryInUseError(AppError):
    def __init__(self, slug: str, listing_count: int) -> None:
        super().__init__(
            6003, f"Category {slug} still has {listing_count} listings and cannot be deleted", 409
        )
        self.listing_count = listing_count


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
