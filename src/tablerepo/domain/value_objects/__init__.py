from .enums import Capability, EventKind
from .scope import DefaultScope, FullScope, RawScope, Scope, ScopeContainer
from .selectors import ByConditions, ById, ByReference, ByReferenceList, RowSelector

__all__ = [
    "Capability",
    "EventKind",
    "Scope",
    "DefaultScope",
    "RawScope",
    "FullScope",
    "ScopeContainer",
    "RowSelector",
    "ById",
    "ByReference",
    "ByReferenceList",
    "ByConditions",
]
