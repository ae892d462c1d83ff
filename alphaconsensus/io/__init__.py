"""Reading and writing of identification tables."""

from .psm_table import (
    load_psm_table,
    store_psm_table,
    to_dataframe,
)

__all__ = [
    'load_psm_table',
    'store_psm_table',
    'to_dataframe',
]
