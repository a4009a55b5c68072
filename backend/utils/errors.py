class MarketplaceError(Exception):
    """
    Base for every failure the core reports to callers.
    `kind` is stable; `message` is human readable.
    """

    kind = "MarketplaceError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.kind,
            "message": self.message,
        }


class NotFound(MarketplaceError):
    kind = "NotFound"
    status_code = 404


class Forbidden(MarketplaceError):
    kind = "Forbidden"
    status_code = 403


class InvalidState(MarketplaceError):
    kind = "InvalidState"
    status_code = 400


class InvalidTransition(MarketplaceError):
    kind = "InvalidTransition"
    status_code = 400


class AlreadyApproved(MarketplaceError):
    kind = "AlreadyApproved"
    status_code = 409


class AlreadyExists(MarketplaceError):
    kind = "AlreadyExists"
    status_code = 409
