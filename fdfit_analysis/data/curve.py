"""
Force-extension curve value object.

An FdCurve holds parallel force, distance and time arrays plus descriptive
data (name, tags, metadata, marks, history). Transformations never modify
the curve: shift, scale, subset, fragment and between_marks return a new
curve with one line appended to its history. Only tags and marks can be
changed in place (add_tag, remove_tag, add_mark).

Usage:
    from fdfit_analysis.data import FdCurve

    fd = FdCurve(force=f, distance=d, name='molecule 1', tags={'mg025'})
    fd_low = fd.subset('f', (0, 30)).shift('d', -0.1)
    print(fd_low.history)
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..errors import InvalidArgument

logger = logging.getLogger(__name__)

# Axis identifiers accepted by shift/scale/subset
VALID_AXES = ('f', 'd', 't')

MetadataValue = Union[str, int, float, bool]


@dataclass(frozen=True)
class Mark:
    """
    Annotated position along a curve.

    Attributes
    ----------
    index : int
        Sample index the mark refers to
    time : float
        Time value at that index
    text : str
        Optional annotation
    """
    index: int
    time: float
    text: str = ''


def _readonly(values: ArrayLike, label: str) -> NDArray[np.float64]:
    arr = np.array(values, dtype=float)
    if arr.ndim != 1:
        raise InvalidArgument(f"{label} must be a 1-D array, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


class FdCurve:
    """
    Force-extension (F,d) curve.

    Parameters
    ----------
    force : array_like
        Force [pN]
    distance : array_like
        Extension [um]
    time : array_like, optional
        Time [s]; defaults to the sample index 0..N-1
    name : str, optional
        Display label (need not be unique)
    tags : iterable of str, optional
        Unordered set of tags, e.g. condition labels ('buffer', 'mg025')
    metadata : dict, optional
        Free-form key -> scalar/string mapping
    marks : list of Mark, optional
        Annotated positions
    history : list of str, optional
        Transformations applied so far

    Raises
    ------
    InvalidArgument
        If the arrays are not 1-D or differ in length
    """

    def __init__(
        self,
        force: ArrayLike,
        distance: ArrayLike,
        time: Optional[ArrayLike] = None,
        name: str = '',
        tags: Optional[Iterable[str]] = None,
        metadata: Optional[Dict[str, MetadataValue]] = None,
        marks: Optional[Iterable[Mark]] = None,
        history: Optional[Iterable[str]] = None
    ):
        self._force = _readonly(force, 'force')
        self._distance = _readonly(distance, 'distance')
        if time is None:
            time = np.arange(len(self._force), dtype=float)
        self._time = _readonly(time, 'time')

        n = len(self._force)
        if len(self._distance) != n or len(self._time) != n:
            raise InvalidArgument(
                f"force, distance and time must have equal length, got "
                f"{n}, {len(self._distance)}, {len(self._time)}"
            )

        self.name = name
        self._tags = set(tags) if tags is not None else set()
        self.metadata: Dict[str, MetadataValue] = dict(metadata) if metadata else {}
        self._marks: List[Mark] = list(marks) if marks is not None else []
        self._history: List[str] = list(history) if history is not None else []

        for mark in self._marks:
            if not 0 <= mark.index < n:
                raise InvalidArgument(f"Mark index {mark.index} out of range for {n} samples")

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def force(self) -> NDArray[np.float64]:
        return self._force

    @property
    def distance(self) -> NDArray[np.float64]:
        return self._distance

    @property
    def time(self) -> NDArray[np.float64]:
        return self._time

    @property
    def tags(self) -> frozenset:
        return frozenset(self._tags)

    @property
    def marks(self) -> Tuple[Mark, ...]:
        return tuple(self._marks)

    @property
    def history(self) -> Tuple[str, ...]:
        return tuple(self._history)

    def axis(self, axis: str) -> NDArray[np.float64]:
        """Return the array for axis 'f', 'd' or 't'."""
        if axis == 'f':
            return self._force
        if axis == 'd':
            return self._distance
        if axis == 't':
            return self._time
        raise InvalidArgument(f"axis must be one of {VALID_AXES}, got '{axis}'")

    def __len__(self) -> int:
        return len(self._force)

    def __repr__(self) -> str:
        tags = ', '.join(sorted(self._tags))
        return f"FdCurve('{self.name}', n={len(self)}, tags=[{tags}])"

    # -------------------------------------------------------------------------
    # Transformations (return new curves)
    # -------------------------------------------------------------------------

    def _derive(
        self,
        history_line: str,
        force: Optional[NDArray] = None,
        distance: Optional[NDArray] = None,
        time: Optional[NDArray] = None,
        indices: Optional[NDArray] = None
    ) -> 'FdCurve':
        """
        Build a new curve from this one.

        Either replace whole arrays (force/distance/time) or keep the samples
        at sorted `indices`; marks are remapped to the kept samples.
        """
        marks = self._marks
        if indices is not None:
            force = self._force[indices]
            distance = self._distance[indices]
            time = self._time[indices]
            position = {int(idx): pos for pos, idx in enumerate(indices)}
            marks = [
                Mark(position[m.index], m.time, m.text)
                for m in self._marks if m.index in position
            ]

        return FdCurve(
            force=self._force if force is None else force,
            distance=self._distance if distance is None else distance,
            time=self._time if time is None else time,
            name=self.name,
            tags=self._tags,
            metadata=self.metadata,
            marks=marks,
            history=self._history + [history_line],
        )

    def shift(self, axis: str, amount: float) -> 'FdCurve':
        """Return a copy with `amount` added to the given axis."""
        values = self.axis(axis) + amount
        line = f"shift('{axis}', {amount:g})"
        if axis == 'f':
            return self._derive(line, force=values)
        if axis == 'd':
            return self._derive(line, distance=values)
        return self._derive(line, time=values)

    def scale(self, axis: str, factor: float) -> 'FdCurve':
        """Return a copy with the given axis multiplied by `factor`."""
        values = self.axis(axis) * factor
        line = f"scale('{axis}', {factor:g})"
        if axis == 'f':
            return self._derive(line, force=values)
        if axis == 'd':
            return self._derive(line, distance=values)
        return self._derive(line, time=values)

    def subset(self, axis: str, value_range: Tuple[float, float]) -> 'FdCurve':
        """
        Return the samples whose `axis` value lies in [lo, hi] (inclusive).

        Parameters
        ----------
        axis : str
            'f', 'd' or 't'
        value_range : tuple of float
            (lo, hi); use -np.inf / np.inf for one-sided ranges
        """
        if len(value_range) != 2:
            raise InvalidArgument(f"value_range must be (lo, hi), got {value_range}")
        lo, hi = value_range
        values = self.axis(axis)
        indices = np.flatnonzero((values >= lo) & (values <= hi))
        return self._derive(f"subset('{axis}', [{lo:g}, {hi:g}])", indices=indices)

    def fragment(self, start: int, stop: int) -> 'FdCurve':
        """Return the contiguous index range [start, stop)."""
        n = len(self)
        if not (0 <= start <= stop <= n):
            raise InvalidArgument(f"Invalid fragment [{start}, {stop}) for {n} samples")
        return self._derive(f"fragment({start}, {stop})", indices=np.arange(start, stop))

    def between_marks(self, first: int, second: int) -> 'FdCurve':
        """
        Return the samples between two marks.

        The range starts at the sample of mark `first` and stops before the
        sample of mark `second` (marks given by position in `marks`).
        """
        try:
            start = self._marks[first].index
            stop = self._marks[second].index
        except IndexError:
            raise InvalidArgument(
                f"Mark positions ({first}, {second}) out of range "
                f"({len(self._marks)} marks)"
            ) from None
        if stop < start:
            start, stop = stop, start
        return self.fragment(start, stop)

    # -------------------------------------------------------------------------
    # In-place annotation
    # -------------------------------------------------------------------------

    def add_tag(self, tag: str) -> None:
        self._tags.add(tag)

    def remove_tag(self, tag: str) -> None:
        self._tags.discard(tag)

    def has_tag(self, tag: str) -> bool:
        return tag in self._tags

    def add_mark(self, index: int, text: str = '') -> Mark:
        """Append a mark at sample `index` and return it."""
        if not 0 <= index < len(self):
            raise InvalidArgument(f"Mark index {index} out of range for {len(self)} samples")
        mark = Mark(int(index), float(self._time[index]), text)
        self._marks.append(mark)
        return mark


__all__ = [
    'Mark',
    'FdCurve',
    'VALID_AXES',
]
