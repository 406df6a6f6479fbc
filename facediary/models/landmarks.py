"""Facial landmark region model.

A detected face is represented as a set of named regions, each holding an
ordered sequence of 2D points normalized to the face bounding box. Points are
in [0, 1] on both axes with the origin at the bottom-left corner of the box,
so ``y`` grows upward.
"""

import json
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Sequence, Tuple

from ..exceptions import TemplateCorrupt

Point = Tuple[float, float]


class Region(str, Enum):
    """Named facial landmark regions."""

    LEFT_EYE = "left_eye"
    RIGHT_EYE = "right_eye"
    NOSE = "nose"
    OUTER_LIPS = "outer_lips"
    INNER_LIPS = "inner_lips"
    FACE_CONTOUR = "face_contour"
    LEFT_EYEBROW = "left_eyebrow"
    RIGHT_EYEBROW = "right_eyebrow"


class LandmarkRegionSet(Mapping):
    """Immutable mapping of ``Region`` to an ordered tuple of points.

    A region missing from the mapping was not detected. Regions passed in with
    no points are dropped on construction, so a present region always holds at
    least one point.
    """

    __slots__ = ("_regions",)

    def __init__(self, regions: Mapping[Region, Sequence[Sequence[float]]] = None):
        frozen: Dict[Region, Tuple[Point, ...]] = {}
        for region, points in (regions or {}).items():
            points = tuple((float(x), float(y)) for x, y in points)
            if points:
                frozen[Region(region)] = points
        self._regions = MappingProxyType(frozen)

    def __getitem__(self, region: Region) -> Tuple[Point, ...]:
        return self._regions[Region(region)]

    def __iter__(self) -> Iterator[Region]:
        return iter(self._regions)

    def __len__(self) -> int:
        return len(self._regions)

    def __contains__(self, region) -> bool:
        try:
            return Region(region) in self._regions
        except ValueError:
            return False

    def __eq__(self, other) -> bool:
        if isinstance(other, LandmarkRegionSet):
            return dict(self._regions) == dict(other._regions)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._regions.items()))

    def __repr__(self) -> str:
        counts = ", ".join(f"{r.value}={len(p)}" for r, p in self._regions.items())
        return f"LandmarkRegionSet({counts})"

    @property
    def is_empty(self) -> bool:
        return not self._regions

    def to_dict(self) -> Dict[str, List[List[float]]]:
        """Plain JSON-compatible form keyed by region value."""
        return {
            region.value: [[x, y] for x, y in points]
            for region, points in self._regions.items()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Sequence[Sequence[float]]]) -> "LandmarkRegionSet":
        return cls({Region(name): points for name, points in data.items()})

    def serialize(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def deserialize(cls, blob: bytes) -> "LandmarkRegionSet":
        """Rebuild a region set from ``serialize`` output.

        Raises:
            TemplateCorrupt: If the blob is not a valid serialized region set.
        """
        try:
            data = json.loads(blob.decode("utf-8"))
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            return cls.from_dict(data)
        except (UnicodeDecodeError, ValueError, TypeError, AttributeError) as e:
            raise TemplateCorrupt(f"Failed to decode landmark data: {str(e)}")
