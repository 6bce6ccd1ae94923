"""
Exception taxonomy for the spread pool.

Authorization denials are ordinary data (see ``utils.authorization.Verdict``);
the classes below are raised only by the mutating pick workflow and the
persistence layer.
"""


class PoolError(Exception):
    """Base class for all pool errors"""

    status_code = 500
    code = "POOL_ERROR"

    def __init__(self, message, code=None, **details):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_dict(self):
        data = {"error": self.message, "code": self.code}
        data.update(self.details)
        return data


class ValidationError(PoolError):
    """Caller-fixable problem with a claim or request"""

    status_code = 400
    code = "VALIDATION_ERROR"


class ClaimDenied(PoolError):
    """An authorization denial carried out of the claim workflow"""

    status_code = 403
    code = "CLAIM_DENIED"

    def __init__(self, reason, message):
        super().__init__(message, code="CLAIM_DENIED", reason=reason)
        self.reason = reason


class TeamUnavailableError(PoolError):
    """The team was claimed by someone else before our commit landed"""

    status_code = 409
    code = "TEAM_UNAVAILABLE"


class DataIntegrityError(PoolError):
    """Stored picks violate the one-active-claim invariants"""

    status_code = 500
    code = "DATA_INTEGRITY"


class StoreUnavailableError(PoolError):
    """The pick store could not be reached; nothing was changed"""

    status_code = 503
    code = "STORE_UNAVAILABLE"
