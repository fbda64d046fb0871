"""
Error taxonomy for the wishlist store.

Every error carries the HTTP status it is answered with; main.py turns them
into `{"error": ...}` responses.
"""


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"error": self.message}


class InvalidInput(StoreError):
    status_code = 400


class Unauthorized(StoreError):
    status_code = 401

    def to_dict(self):
        return {"success": False, "error": self.message}


class Conflict(StoreError):
    # The signup contract answers duplicates with 400, not 409
    status_code = 400


class NotFound(StoreError):
    status_code = 404


class StorageFailure(StoreError):
    status_code = 500
