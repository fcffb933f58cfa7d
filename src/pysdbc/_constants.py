"""Defaults and limits shared by the compilers and the synchronizer."""

OPERATOR_PREFIX = "$"
"""Reserved marker that distinguishes operator keys from field names."""

DEFAULT_PRIMARY_KEY = "_id"
"""Primary key column added to every relational table."""

INDEX_NAME_PREFIX = "idx"
"""Prefix of generated index names (``idx_<table>_<field>``)."""

INDEX_NAME_HASH_LENGTH = 8
"""Hex digits of the hash that ends a shortened index name."""

DEFAULT_MAX_FILTER_DEPTH = 32
"""Maximum nesting of ``$and``/``$or`` groups (CWE-674 prevention)."""

ALWAYS_TRUE = "1=1"
ALWAYS_FALSE = "1=0"
