"""Filaments: long thin curves such as staff lines and stems.

A filament is an ordered sequence of sampled points together with a
natural cubic spline fitted through them. Staff line filaments come in
clusters of roughly parallel siblings (the lines of one staff), which
allows large holes in one filament to be filled by interpolating between
its neighbors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from enum import Enum

import numpy as np
from scipy.interpolate import CubicSpline

from glyph_omr.models import FilamentParams
from glyph_omr.scale import Scale

logger = logging.getLogger(__name__)

Point = tuple[float, float]


class Orientation(Enum):
    """Main direction of a filament."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class Filament:
    """A sampled curve with its fitted spline.

    Points are kept in strictly increasing order along the filament
    orientation: by x for a horizontal filament, by y for a vertical one.

    Attributes:
        points: The (x, y) points, ordered along the orientation.
        interline: Interline of the image, in pixels.
        cluster_pos: Rank of the filament within its cluster of parallel
            siblings. Used for interpolation only, not for identity.
        orientation: Main direction of the filament.
        params: Hole filling parameters.
    """

    def __init__(
        self,
        points: Iterable[Point],
        interline: int,
        cluster_pos: int = 0,
        orientation: Orientation = Orientation.HORIZONTAL,
        params: FilamentParams | None = None,
    ):
        self.interline = interline
        self.cluster_pos = cluster_pos
        self.orientation = orientation
        self.params = params if params is not None else FilamentParams()
        self.points: list[Point] = sorted(
            ((float(x), float(y)) for x, y in points), key=self._along
        )
        self._spline: CubicSpline | None = None
        self.fit()

    # Coordinates along and across the orientation
    def _along(self, point: Point) -> float:
        return point[0] if self.orientation is Orientation.HORIZONTAL else point[1]

    def _across(self, point: Point) -> float:
        return point[1] if self.orientation is Orientation.HORIZONTAL else point[0]

    def _make_point(self, along: float, across: float) -> Point:
        if self.orientation is Orientation.HORIZONTAL:
            return (float(along), float(across))
        return (float(across), float(along))

    @property
    def start(self) -> float:
        return self._along(self.points[0])

    @property
    def stop(self) -> float:
        return self._along(self.points[-1])

    def fit(self) -> None:
        """Fit the natural cubic spline through the current points.

        Raises:
            ValueError: If two points share the same coordinate along the
                filament orientation.
        """
        if len(self.points) < 2:
            self._spline = None
            return

        along = np.array([self._along(p) for p in self.points])
        across = np.array([self._across(p) for p in self.points])
        if np.any(np.diff(along) <= 0):
            raise ValueError(f"Points of {self} are not strictly increasing")

        self._spline = CubicSpline(along, across, bc_type="natural")

    def position_at(self, coord: float) -> float:
        """Return the curve position across the orientation at ``coord``.

        Beyond the first and last points, the curve is extended along its
        tangent at the nearest end.
        """
        if not self.points:
            raise ValueError("Empty filament has no position")
        if self._spline is None:
            return self._across(self.points[0])

        start, stop = self.start, self.stop
        if coord < start:
            end = start
        elif coord > stop:
            end = stop
        else:
            return float(self._spline(coord))

        slope = float(self._spline(end, 1))
        return float(self._spline(end)) + slope * (coord - end)

    def find_point(self, coord: float, margin: float) -> Point | None:
        """Find the recorded point closest to ``coord``, within ``margin``.

        Args:
            coord: Coordinate along the filament orientation.
            margin: Maximum distance along the orientation.

        Returns:
            The closest point, or None if no point lies within the margin.
        """
        best: Point | None = None
        best_distance = margin
        for point in self.points:
            distance = abs(self._along(point) - coord)
            if distance <= best_distance:
                if best is None or distance < best_distance:
                    best = point
                    best_distance = distance
        return best

    def fill_holes(
        self,
        pos: int,
        siblings: Sequence[Filament],
        params: FilamentParams | None = None,
    ) -> int:
        """Fill large holes in this filament with virtual points.

        A hole is the span between two consecutive points. When it is
        longer than the maximum hole length, evenly spaced virtual points
        are inserted. Each virtual point is interpolated between the
        nearest sibling above and the nearest sibling below that have a
        point close enough; lacking either, the point is taken on the
        current curve of this filament. Spans before the first point and
        after the last point are never filled.

        Args:
            pos: Cluster position of this filament.
            siblings: The cluster of parallel filaments this one is part
                of. This filament may or may not be included.
            params: Hole filling parameters overriding the filament's own.

        Returns:
            The number of inserted points. The curve is refitted only when
            this number is positive.
        """
        params = params if params is not None else self.params
        scale = Scale(self.interline)
        max_hole_length = scale.to_pixels(params.max_hole_length)
        virtual_length = scale.to_pixels(params.virtual_segment_length)
        if virtual_length <= 0:
            logger.debug(f"No virtual length at interline {self.interline}")
            return 0
        margin = virtual_length // 2

        above = sorted(
            (f for f in siblings if f is not self and f.cluster_pos < pos),
            key=lambda f: -f.cluster_pos,
        )
        below = sorted(
            (f for f in siblings if f is not self and f.cluster_pos > pos),
            key=lambda f: f.cluster_pos,
        )

        filled: list[Point] = []
        inserted = 0
        previous: Point | None = None

        for point in self.points:
            if previous is not None:
                hole_start = self._along(previous)
                hole_stop = self._along(point)
                hole_length = hole_stop - hole_start

                if hole_length > max_hole_length:
                    count = int(round(hole_length / virtual_length)) - 1
                    if count > 0:
                        logger.debug(
                            f"Hole {hole_start}-{hole_stop} insert:{count} in {self}"
                        )
                        dx = hole_length / (count + 1)
                        last = hole_start

                        for i in range(1, count + 1):
                            coord = int(round(hole_start + i * dx))
                            if not last < coord < hole_stop:
                                continue

                            virtual = self._interpolate(coord, pos, above, below, margin)
                            if virtual is None:
                                # Take default curve point instead
                                virtual = self._make_point(coord, self.position_at(coord))
                            elif not last < self._along(virtual) < hole_stop:
                                virtual = self._make_point(coord, self._across(virtual))

                            logger.debug(f"Inserted {virtual}")
                            filled.append(virtual)
                            last = self._along(virtual)
                            inserted += 1

            filled.append(point)
            previous = point

        if inserted:
            self.points = filled
            self.fit()

        return inserted

    def _interpolate(
        self,
        coord: float,
        pos: int,
        above: list[Filament],
        below: list[Filament],
        margin: int,
    ) -> Point | None:
        """Interpolate a point at ``coord`` from one sibling above and one below.

        Extrapolation from a single side is not reliable enough, so no
        point is returned unless both references exist.
        """
        one = _find_neighbor(above, coord, margin)
        if one is None:
            return None

        two = _find_neighbor(below, coord, margin)
        if two is None:
            return None

        pos_one, point_one = one
        pos_two, point_two = two
        ratio = (pos - pos_one) / (pos_two - pos_one)

        return (
            (1 - ratio) * point_one[0] + ratio * point_two[0],
            (1 - ratio) * point_one[1] + ratio * point_two[1],
        )

    def __len__(self) -> int:
        return len(self.points)

    def __repr__(self) -> str:
        if not self.points:
            return f"Filament(pos={self.cluster_pos}, empty)"
        return (
            f"Filament(pos={self.cluster_pos}, {self.orientation.value}, "
            f"{len(self.points)} points, {self.start:g}-{self.stop:g})"
        )


def _find_neighbor(
    filaments: list[Filament], coord: float, margin: int
) -> tuple[int, Point] | None:
    """Return (cluster position, point) of the first filament with a point near ``coord``."""
    for filament in filaments:
        point = filament.find_point(coord, margin)
        if point is not None:
            return filament.cluster_pos, point
    return None


def fill_cluster_holes(
    cluster: Sequence[Filament], params: FilamentParams | None = None
) -> int:
    """Fill the holes of every filament in a cluster of parallel filaments.

    Args:
        cluster: The parallel filaments, each with its cluster position.
        params: Hole filling parameters for the whole cluster, None to
            let each filament use its own.

    Returns:
        The total number of inserted points.
    """
    return sum(
        filament.fill_holes(filament.cluster_pos, cluster, params) for filament in cluster
    )
