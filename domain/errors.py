class LunchError(Exception):
    """Failure scoped to a single room operation."""


class AlreadyExists(LunchError):
    pass


class RetryLimitReached(LunchError):
    pass


class EmptyPool(LunchError):
    pass


class NothingToRate(LunchError):
    pass


class NotFound(LunchError):
    pass


class PlaceNotFound(NotFound):
    pass


class MenuNotFound(NotFound):
    pass


class StoreUnavailable(LunchError):
    pass
