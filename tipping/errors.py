"""
Error taxonomy for the F1 tipping application

Every error carries the HTTP status the API answers with, so routes can
simply raise and let the handlers registered in create_app() format the
response.
"""


class TippingError(Exception):
    """Base class for domain errors"""

    status_code = 400

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}

    def to_dict(self):
        data = {"error": self.message}
        if self.errors:
            data["errors"] = self.errors
        return data


class ValidationError(TippingError):
    """Malformed submission, mismatched prediction/result pair, deadline passed"""

    status_code = 400


class AuthorizationError(TippingError):
    """Voting on your own prediction, or a non-admin touching results"""

    status_code = 403


class NotFoundError(TippingError):
    """Missing record; for scoring this means the result is not entered yet"""

    status_code = 404
