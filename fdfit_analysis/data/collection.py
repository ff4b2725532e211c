"""
Ordered collection of force-extension curves.

FdCollection keeps insertion order and refuses to hold the same curve
object twice, unless the duplicate check is explicitly skipped (bootstrap
resampling draws with replacement and needs duplicates).

Set operations (union, intersect, subtract) compare curves by identity,
never by content.
"""

import logging
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Union

import numpy as np

from .curve import FdCurve
from ..errors import InvalidArgument, EmptyInput

logger = logging.getLogger(__name__)


class FdCollection:
    """
    Ordered set of FdCurve objects.

    Parameters
    ----------
    curves : iterable of FdCurve, optional
        Initial members
    skip_duplicate_check : bool, optional
        Allow the same curve object more than once (default: False)

    Raises
    ------
    InvalidArgument
        If a curve is added twice without skip_duplicate_check, or an item
        is not an FdCurve
    """

    def __init__(
        self,
        curves: Optional[Iterable[FdCurve]] = None,
        skip_duplicate_check: bool = False
    ):
        self._curves: List[FdCurve] = []
        if curves is not None:
            self.add(*curves, skip_duplicate_check=skip_duplicate_check)

    def add(self, *curves: FdCurve, skip_duplicate_check: bool = False) -> None:
        """Append curves in order."""
        for curve in curves:
            if not isinstance(curve, FdCurve):
                raise InvalidArgument(f"Expected FdCurve, got {type(curve).__name__}")
            if not skip_duplicate_check and self.contains(curve):
                raise InvalidArgument(f"Curve '{curve.name}' is already in the collection")
            self._curves.append(curve)

    def contains(self, curve: FdCurve) -> bool:
        """True if this exact curve object is a member."""
        return any(c is curve for c in self._curves)

    # -------------------------------------------------------------------------
    # Sequence protocol
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._curves)

    def __iter__(self) -> Iterator[FdCurve]:
        return iter(list(self._curves))

    def __getitem__(self, index: Union[int, slice]) -> Union[FdCurve, 'FdCollection']:
        if isinstance(index, slice):
            return FdCollection(self._curves[index], skip_duplicate_check=True)
        return self._curves[index]

    def __repr__(self) -> str:
        return f"FdCollection({len(self)} curves)"

    @property
    def items(self) -> List[FdCurve]:
        return list(self._curves)

    def is_empty(self) -> bool:
        return len(self._curves) == 0

    # -------------------------------------------------------------------------
    # Filtering and set algebra
    # -------------------------------------------------------------------------

    def get_by_tag(self, tag: str) -> 'FdCollection':
        """Members carrying `tag`, in collection order."""
        return FdCollection(
            (c for c in self._curves if c.has_tag(tag)),
            skip_duplicate_check=True
        )

    def get_by_tags(self, tags: Sequence[str], match: str = 'all') -> 'FdCollection':
        """
        Members carrying all (match='all') or any (match='any') of `tags`.
        """
        if match == 'all':
            selector = all
        elif match == 'any':
            selector = any
        else:
            raise InvalidArgument(f"match must be 'all' or 'any', got '{match}'")
        return FdCollection(
            (c for c in self._curves if selector(c.has_tag(t) for t in tags)),
            skip_duplicate_check=True
        )

    def union(self, other: 'FdCollection') -> 'FdCollection':
        """Members of self, then members of other not already included."""
        result = FdCollection(self._curves, skip_duplicate_check=True)
        for curve in other:
            if not result.contains(curve):
                result.add(curve)
        return result

    def intersect(self, other: 'FdCollection') -> 'FdCollection':
        """Members of self that are also members of other."""
        return FdCollection(
            (c for c in self._curves if other.contains(c)),
            skip_duplicate_check=True
        )

    def subtract(self, other: 'FdCollection') -> 'FdCollection':
        """Members of self that are not members of other."""
        return FdCollection(
            (c for c in self._curves if not other.contains(c)),
            skip_duplicate_check=True
        )

    # -------------------------------------------------------------------------
    # Transformations
    # -------------------------------------------------------------------------

    def map(self, fn: Callable[[FdCurve], FdCurve]) -> 'FdCollection':
        """New collection with fn applied to every member (e.g. a shift)."""
        return FdCollection((fn(c) for c in self._curves), skip_duplicate_check=True)

    def for_each(self, fn: Callable[[FdCurve], None]) -> None:
        """Call fn on every member; for in-place operations such as add_tag."""
        for curve in self._curves:
            fn(curve)

    def concatenated(self, name: Optional[str] = None) -> FdCurve:
        """
        Flatten all members into one curve.

        Samples keep collection order; the sample count is the sum over
        members and tags are the union of member tags.

        Raises
        ------
        EmptyInput
            If the collection is empty
        """
        if self.is_empty():
            raise EmptyInput("Cannot concatenate an empty collection")

        tags = set()
        for curve in self._curves:
            tags |= curve.tags

        return FdCurve(
            force=np.concatenate([c.force for c in self._curves]),
            distance=np.concatenate([c.distance for c in self._curves]),
            time=np.concatenate([c.time for c in self._curves]),
            name=name if name is not None else f"concatenated ({len(self)} curves)",
            tags=tags,
            history=[f"concatenated({len(self)} curves)"],
        )

    def take(self, indices: Sequence[int]) -> 'FdCollection':
        """Members at `indices` (repetitions allowed)."""
        return FdCollection(
            (self._curves[int(i)] for i in indices),
            skip_duplicate_check=True
        )

    def resample(
        self,
        rng: Optional[Union[int, np.random.Generator]] = None
    ) -> 'FdCollection':
        """
        Draw len(self) members with replacement.

        Parameters
        ----------
        rng : int or numpy.random.Generator, optional
            Seed or generator for reproducible draws

        Returns
        -------
        resampled : FdCollection
            Same size; every item is one of the original curve objects
        """
        if self.is_empty():
            raise EmptyInput("Cannot resample an empty collection")
        rng = np.random.default_rng(rng)
        n = len(self)
        return self.take(rng.integers(0, n, size=n))


__all__ = [
    'FdCollection',
]
