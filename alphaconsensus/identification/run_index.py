"""Mapping from identification-run identifiers to dense integer slots."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List

from alphaconsensus.exceptions import IncompatibleInputError


class RunIndex:
    """Dense slot per run identifier, in order of first appearance.

    Built once per invocation and read-only afterwards.

    Examples
    --------
    >>> index = RunIndex.from_identifiers(["mascot", "xtandem", "mascot"])
    >>> len(index), index.slot("xtandem")
    (2, 1)
    """

    def __init__(self, identifiers: List[str]):
        self._identifiers = list(identifiers)
        self._slots: Dict[str, int] = {}
        for slot, run_id in enumerate(self._identifiers):
            if run_id in self._slots:
                raise ValueError(f"Duplicate run identifier: {run_id}")
            self._slots[run_id] = slot

    @classmethod
    def from_identifiers(cls, identifiers: Iterable[str]) -> 'RunIndex':
        """Build an index, silently skipping repeated identifiers."""
        unique = list(dict.fromkeys(identifiers))
        return cls(unique)

    def slot(self, run_id: str) -> int:
        """Return the slot of a run.

        Raises:
            IncompatibleInputError: If the run is not part of the index.
        """
        try:
            return self._slots[run_id]
        except KeyError:
            raise IncompatibleInputError(
                f"Identification references unknown identification run '{run_id}'"
            ) from None

    @property
    def identifiers(self) -> List[str]:
        return list(self._identifiers)

    def __contains__(self, run_id: object) -> bool:
        return run_id in self._slots

    def __len__(self) -> int:
        return len(self._identifiers)

    def __iter__(self) -> Iterator[str]:
        return iter(self._identifiers)

    def __repr__(self) -> str:
        return f"RunIndex({self._identifiers!r})"
