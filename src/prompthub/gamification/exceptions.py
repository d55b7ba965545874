"""Badge engine errors."""


class CatalogError(ValueError):
    """The static badge catalog is misconfigured. Fatal at start-up."""


class StatsUnavailableError(Exception):
    """The activity store could not be read. The last snapshot is kept."""


class UserNotFoundError(LookupError):
    """No user with the requested id."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id
