from enum import Enum


class Capability(str, Enum):
    """Capability tags a behavior may declare.

    Subscribers pick the events they take part in by testing these tags
    against the active behavior set.
    """

    FILTER = "filter"
    SOFT_DELETE = "soft_delete"
    TIMESTAMPS = "timestamps"
    SORTING = "sorting"
    CAST = "cast"
    CACHE = "cache"


class EventKind(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    LOAD = "load"
