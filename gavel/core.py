from typing import Protocol


class Clock(Protocol):
    """Monotonic time source, seconds as float. Never decreases."""

    def now(self) -> float: ...


class IdSource(Protocol):
    def next_id(self) -> str: ...


class SettlementLedger(Protocol):
    """Account-side capability used when an auction closes with a winner."""

    def debit(self, account_id: str, amount: float) -> None: ...

    def credit(self, account_id: str, amount: float) -> None: ...

    def record_ownership(self, account_id: str, item_id: str) -> None: ...

    def record_sale(self, account_id: str, item_id: str) -> None: ...

    # All four effects above, or none of them.
    def settle(
        self, winner_id: str, seller_id: str, item_id: str, price: float
    ) -> None: ...


class GavelError(RuntimeError):
    """Base class for marketplace failures raised as exceptions."""


class AuctionNotFound(GavelError, KeyError):
    """Raised when an item id has no auction in the registry."""


class DuplicateAuctionId(GavelError):
    """Raised when a freshly generated id collides with a registered auction."""


class AccountNotFound(GavelError, KeyError):
    """Raised when an account id or username is unknown."""


class UsernameTaken(GavelError):
    """Raised when registering a username that already exists."""


class InsufficientFunds(GavelError):
    """Raised when an account balance cannot cover a debit."""


class SettlementError(GavelError):
    """Raised when a sold auction could not be settled."""


class InvalidAuction(GavelError, ValueError):
    """Raised when auction creation parameters are rejected."""
