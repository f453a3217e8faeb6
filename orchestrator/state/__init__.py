from .annotations import (
    BUILTIN_SCHEMAS,
    DEFAULT_SCHEMA_NAME,
    SCHEMA_ALIASES,
    canonical_schema_name,
)
from .schema import StateField, StateSchema, append_reducer, last_value, merge_reducer

__all__ = [
    "BUILTIN_SCHEMAS",
    "DEFAULT_SCHEMA_NAME",
    "SCHEMA_ALIASES",
    "StateField",
    "StateSchema",
    "append_reducer",
    "canonical_schema_name",
    "last_value",
    "merge_reducer",
]
