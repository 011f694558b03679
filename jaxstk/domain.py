import math
from typing import Iterator, Tuple, Union

import equinox as eqx
import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Bool, Float, Int

from .arrays import as_float_array, as_points
from .errors import InvalidDomainError

# Slack, in grid units, when deciding whether a point lies on the grid's closed box.
SUPPORT_TOLERANCE = 1e-4


class BoxDomain(eqx.Module):
    """
    Axis-aligned box ``[origin, extent]`` in D dimensions.

    Used as the support of function-backed images and as the region that
    samplers draw integration points from.
    """

    origin: Float[Array, "dim"]  # type: ignore
    extent: Float[Array, "dim"]  # type: ignore

    def __init__(self, origin, extent):
        origin = jnp.atleast_1d(as_float_array(origin))
        extent = jnp.atleast_1d(as_float_array(extent))
        if origin.shape != extent.shape or origin.ndim != 1:
            raise InvalidDomainError(
                f"origin and extent must be 1-D and of equal length, "
                f"got {origin.shape} and {extent.shape}"
            )
        self.origin = jnp.minimum(origin, extent)
        self.extent = jnp.maximum(origin, extent)

    @property
    def dimensionality(self) -> int:
        return self.origin.shape[0]

    @property
    def volume(self) -> Float[Array, ""]:  # type: ignore
        return jnp.prod(self.extent - self.origin)

    def is_inside(self, points) -> Bool[Array, "..."]:  # type: ignore
        points = as_points(points, self.dimensionality)
        slack = SUPPORT_TOLERANCE * jnp.maximum(self.extent - self.origin, 1.0)
        inside = (points >= self.origin - slack) & (points <= self.extent + slack)
        return jnp.all(inside, axis=-1)


class DiscreteImageDomain(eqx.Module):
    """
    Regular N-dimensional sampling grid.

    The grid has ``size[i]`` points along axis ``i``, starting at ``origin[i]``
    and ``spacing[i]`` apart. Points are ordered with the first axis running
    fastest, so the linear index of the multi-index ``(i0, i1, ...)`` is
    ``i0 + size[0] * i1 + size[0] * size[1] * i2 + ...``. Pixel arrays of
    discrete images use the same ordering.

    Args:
        origin: Position of the first grid point (a number for 1-D grids)
        spacing: Distance between neighbouring points, per axis (non-zero)
        size: Number of points per axis (each at least 1)

    Raises:
        InvalidDomainError: For a zero spacing, a size below 1, or tuples of
            different lengths.
    """

    origin: Float[Array, "dim"]  # type: ignore
    spacing: Float[Array, "dim"]  # type: ignore
    size: Tuple[int, ...] = eqx.field(static=True)

    def __init__(self, origin, spacing, size):
        origin = jnp.atleast_1d(as_float_array(origin))
        spacing = jnp.atleast_1d(as_float_array(spacing))
        raw_size = np.atleast_1d(np.asarray(size))
        if np.any(raw_size != np.floor(raw_size)):
            raise InvalidDomainError(f"Size components must be whole numbers, got {raw_size.tolist()}")
        size = tuple(int(n) for n in raw_size)

        if not (origin.ndim == spacing.ndim == 1 and origin.shape[0] == spacing.shape[0] == len(size)):
            raise InvalidDomainError(
                f"origin, spacing and size must have the same length, "
                f"got {origin.shape[0]}, {spacing.shape[0]} and {len(size)}"
            )
        if any(n < 1 for n in size):
            raise InvalidDomainError(f"Every size component must be at least 1, got {size}")
        if np.any(np.asarray(spacing) == 0):
            raise InvalidDomainError(f"Spacing components must be non-zero, got {np.asarray(spacing)}")

        self.origin = origin
        self.spacing = spacing
        self.size = size

    @property
    def dimensionality(self) -> int:
        return len(self.size)

    @property
    def number_of_points(self) -> int:
        return math.prod(self.size)

    @property
    def extent(self) -> Float[Array, "dim"]:  # type: ignore
        return self.origin + self.spacing * (jnp.asarray(self.size) - 1)

    @property
    def bounding_box(self) -> BoxDomain:
        return BoxDomain(self.origin, self.extent)

    @property
    def strides(self) -> np.ndarray:
        """Linear-index step for a unit move along each axis."""
        return np.cumprod((1,) + self.size[:-1])

    def index_to_linear_index(self, index) -> Int[Array, "..."]:  # type: ignore
        index = jnp.asarray(index)
        return jnp.sum(index * self.strides, axis=-1)

    def linear_index_to_index(self, linear_index) -> Int[Array, "... dim"]:  # type: ignore
        linear_index = jnp.asarray(linear_index)
        return (linear_index[..., None] // self.strides) % np.asarray(self.size)

    def point(self, index: Union[int, Tuple[int, ...]]) -> Float[Array, "dim"]:  # type: ignore
        """Grid point at a linear index or at a multi-index."""
        if np.ndim(index) == 0:
            index = self.linear_index_to_index(index)
        return self.origin + self.spacing * jnp.asarray(index)

    def point_to_index(self, points) -> Int[Array, "... dim"]:  # type: ignore
        """Multi-index of the grid point nearest to each of ``points``."""
        points = as_points(points, self.dimensionality)
        index = jnp.round((points - self.origin) / self.spacing).astype(jnp.int32)
        return jnp.clip(index, 0, np.asarray(self.size) - 1)

    def continuous_index(self, points) -> Float[Array, "... dim"]:  # type: ignore
        """Position of ``points`` in grid units, ``(p - origin) / spacing``."""
        return (points - self.origin) / self.spacing

    @property
    def indices(self) -> Int[Array, "n dim"]:  # type: ignore
        """All multi-indices, in linear-index order."""
        grids = jnp.meshgrid(*[jnp.arange(n) for n in self.size], indexing="ij")
        # .T reverses the axes, so a C-order ravel runs the first axis fastest
        return jnp.stack([g.T.ravel() for g in grids], axis=-1)

    @property
    def points(self) -> Float[Array, "n dim"]:  # type: ignore
        """All grid points, in linear-index order. Recomputed on each access."""
        return self.origin + self.spacing * self.indices

    def iter_points(self) -> Iterator[Float[Array, "dim"]]:  # type: ignore
        """Lazily yield the grid points one at a time, in linear-index order."""
        for linear_index in range(self.number_of_points):
            yield self.point(linear_index)

    def is_inside(self, points) -> Bool[Array, "..."]:  # type: ignore
        """Whether each point lies in the closed box spanned by the grid."""
        points = as_points(points, self.dimensionality)
        u = self.continuous_index(points)
        upper = jnp.asarray(self.size) - 1
        inside = (u >= -SUPPORT_TOLERANCE) & (u <= upper + SUPPORT_TOLERANCE)
        return jnp.all(inside, axis=-1)
