"""Exception types shared by the storage layer and the API boundary."""


class PetFinderError(Exception):
    """Base class for application errors."""


class StorageError(PetFinderError):
    """The underlying database failed. Mapped to a generic 500."""


class DuplicateError(PetFinderError):
    """A unique key (username, favorite pair) already exists. Mapped to 400."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


ALREADY_IN_FAVORITES = "Already in favorites"
USERNAME_TAKEN = "Username already exists"
