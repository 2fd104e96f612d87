# ==========================================================
#                  LEDGER EXCEPTIONS
# ==========================================================

class MarketplaceError(Exception):
    """Base marketplace exception, reported to the client as {"error": message}."""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message}


class ValidationError(MarketplaceError):
    status_code = 400


class InsufficientBalanceError(ValidationError):
    pass


class NotFoundError(MarketplaceError):
    status_code = 404


class DistributionError(MarketplaceError):
    """Nothing to distribute, no coins outstanding, no investors."""
    status_code = 422


class StaleStateError(MarketplaceError):
    """The persisted coin value moved between read and write."""
    status_code = 409


class StoreAccessError(MarketplaceError):
    status_code = 500
