"""Cross-run grouping of peptide identifications.

This module provides:
- Greedy quality-threshold linking of identifications by RT and m/z
- Direct use of pre-grouped features as groups
"""

from .qt_linking import (
    find_compatible_pairs,
    group_identifications,
    group_membership,
    groups_from_features,
)

__all__ = [
    'find_compatible_pairs',
    'group_identifications',
    'group_membership',
    'groups_from_features',
]
