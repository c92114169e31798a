"""Exception types raised inside projreview."""


class ParseError(ValueError):
    """An interval, date or progress string could not be parsed."""


class NotFoundError(LookupError):
    """A note or index entry expected for a filename is missing."""


class ConstructionError(ValueError):
    """A note cannot be turned into a Project (e.g. it has no title)."""


class PersistenceError(OSError):
    """Writing the project index or a preference failed."""
