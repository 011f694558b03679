import abc
import logging
from typing import Callable, Optional, Tuple

import equinox as eqx
import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Bool, Float

from .arrays import as_points
from .domain import BoxDomain, DiscreteImageDomain

logger = logging.getLogger(__name__)


class DiscreteImage(eqx.Module):
    """
    Pixel values sampled on a DiscreteImageDomain.

    Values are stored flat, in the domain's linear-index order (first axis
    fastest). Scalar images have ``values.shape == (n,)``; vector images have
    ``values.shape == (n, k)``. Any numeric dtype is kept as given.
    """

    domain: DiscreteImageDomain
    values: Array

    def __init__(self, domain: DiscreteImageDomain, values):
        values = jnp.asarray(values)
        if values.ndim == 0 or values.shape[0] != domain.number_of_points:
            raise ValueError(
                f"Domain has {domain.number_of_points} points but {values.shape[:1]} "
                f"values were given"
            )
        self.domain = domain
        self.values = values

    @classmethod
    def from_grid(cls, domain: DiscreteImageDomain, grid) -> "DiscreteImage":
        """Build an image from an array indexed ``[i0, i1, ..., *pixel]``."""
        grid = jnp.asarray(grid)
        dim = domain.dimensionality
        pixel_axes = tuple(range(dim, grid.ndim))
        flat = jnp.transpose(grid, tuple(reversed(range(dim))) + pixel_axes)
        return cls(domain, flat.reshape((domain.number_of_points,) + grid.shape[dim:]))

    @property
    def pixel_shape(self) -> Tuple[int, ...]:
        return tuple(self.values.shape[1:])

    def as_grid(self) -> Array:
        """Pixel values as an array indexed ``[i0, i1, ..., *pixel]``."""
        dim = self.domain.dimensionality
        reversed_shape = tuple(reversed(self.domain.size)) + self.pixel_shape
        grid = self.values.reshape(reversed_shape)
        pixel_axes = tuple(range(dim, grid.ndim))
        return jnp.transpose(grid, tuple(reversed(range(dim))) + pixel_axes)

    def __len__(self) -> int:
        return self.values.shape[0]

    def __getitem__(self, index):
        """Pixel at a linear index, or at a multi-index given as a tuple."""
        if isinstance(index, tuple):
            index = self.domain.index_to_linear_index(jnp.asarray(index))
        return self.values[index]


class ContinuousImage(eqx.Module):
    """
    A function from D-dimensional points to pixel values.

    Subclasses implement ``evaluate`` (raw batched values) and
    ``is_defined_at`` (the support). Callers normally go through ``__call__``
    for a single point, which answers ``None`` outside the support, or through
    ``lift`` for batches, which zeroes undefined entries and returns the mask
    alongside. Neither raises for points outside the support.
    """

    @property
    @abc.abstractmethod
    def dimensionality(self) -> int:
        ...

    @property
    def pixel_shape(self) -> Tuple[int, ...]:
        return ()

    @abc.abstractmethod
    def evaluate(self, points: Float[Array, "... dim"]) -> Array:  # type: ignore
        """Values at ``points`` without support masking; shape ``(..., *pixel_shape)``."""

    @abc.abstractmethod
    def is_defined_at(self, points: Float[Array, "... dim"]) -> Bool[Array, "..."]:  # type: ignore
        ...

    def lift(self, points) -> Tuple[Array, Bool[Array, "..."]]:  # type: ignore
        """
        Evaluate a batch of points, substituting zero outside the support.

        Returns:
            ``(values, defined)`` where ``values`` has shape
            ``(..., *pixel_shape)`` and ``defined`` has the batch shape.
        """
        points = as_points(points, self.dimensionality)
        values = self.evaluate(points)
        defined = self.is_defined_at(points)
        mask = defined.reshape(defined.shape + (1,) * (values.ndim - defined.ndim))
        return jnp.where(mask, values, jnp.zeros_like(values)), defined

    def __call__(self, point) -> Optional[Array]:
        point = as_points(point, self.dimensionality)
        if not bool(jnp.all(self.is_defined_at(point))):
            return None
        return self.evaluate(point)

    def differentiate(self) -> Optional["ContinuousImage"]:
        """The gradient image, or ``None`` when no derivative is available."""
        return None

    def compose(self, transformation) -> "ContinuousImage":
        """The image ``p -> self(transformation(p))``."""
        return ComposedImage(self, transformation)


class FunctionImage(ContinuousImage):
    """
    Continuous image backed by plain functions over a box.

    Args:
        domain: Support of the image
        function: Maps a batch of points ``(..., D)`` to values
            ``(..., *pixel_shape)``
        derivative: Optional function mapping points to gradients
            ``(..., D, *pixel_shape)``
        pixel_shape: Shape of one pixel value, ``()`` for scalar images
    """

    domain: BoxDomain
    function: Callable = eqx.field(static=True)
    derivative: Optional[Callable] = eqx.field(static=True, default=None)
    value_shape: Tuple[int, ...] = eqx.field(static=True, default=())

    def __init__(self, domain: BoxDomain, function: Callable, derivative: Optional[Callable] = None,
                 pixel_shape: Tuple[int, ...] = ()):
        self.domain = domain
        self.function = function
        self.derivative = derivative
        self.value_shape = tuple(pixel_shape)

    @property
    def dimensionality(self) -> int:
        return self.domain.dimensionality

    @property
    def pixel_shape(self) -> Tuple[int, ...]:
        return self.value_shape

    def evaluate(self, points):
        return jnp.asarray(self.function(points))

    def is_defined_at(self, points):
        return self.domain.is_inside(points)

    def differentiate(self) -> Optional[ContinuousImage]:
        if self.derivative is None:
            return None
        return FunctionImage(self.domain, self.derivative,
                             pixel_shape=(self.dimensionality,) + self.value_shape)


class ComposedImage(ContinuousImage):
    """``image ∘ transformation``: defined where the transformed point is in the image's support."""

    image: ContinuousImage
    transformation: eqx.Module

    @property
    def dimensionality(self) -> int:
        return self.image.dimensionality

    @property
    def pixel_shape(self) -> Tuple[int, ...]:
        return self.image.pixel_shape

    def evaluate(self, points):
        return self.image.evaluate(self.transformation(points))

    def is_defined_at(self, points):
        return self.image.is_defined_at(self.transformation(points))

    def differentiate(self) -> Optional[ContinuousImage]:
        gradient = self.image.differentiate()
        if gradient is None:
            return None
        return ComposedGradientImage(gradient, self.transformation)


class ComposedGradientImage(ContinuousImage):
    """Chain rule: gradient of ``f ∘ T`` at ``p`` is ``∇f(T(p)) · J_T(p)``."""

    gradient: ContinuousImage
    transformation: eqx.Module

    @property
    def dimensionality(self) -> int:
        return self.gradient.dimensionality

    @property
    def pixel_shape(self) -> Tuple[int, ...]:
        return self.gradient.pixel_shape

    def evaluate(self, points):
        outer = self.gradient.evaluate(self.transformation(points))
        jacobian = self.transformation.jacobian(points)
        # Flatten pixel axes so scalar and vector pixels share one contraction
        flat = outer.reshape(points.shape + (-1,))
        return jnp.einsum("...ij,...ik->...jk", jacobian, flat).reshape(outer.shape)

    def is_defined_at(self, points):
        return self.gradient.is_defined_at(self.transformation(points))


def resample(image: ContinuousImage, domain: DiscreteImageDomain, default_value=0, dtype=None) -> DiscreteImage:
    """
    Sample a continuous image on every point of ``domain``.

    Points outside the image's support receive ``default_value``. Integer
    output dtypes are rounded to the nearest value before casting.
    """
    values, defined = image.lift(domain.points)
    mask = defined.reshape(defined.shape + (1,) * (values.ndim - 1))
    values = jnp.where(mask, values, default_value)
    if dtype is not None:
        if np.issubdtype(np.dtype(dtype), np.integer):
            values = jnp.round(values)
        values = values.astype(dtype)
    logger.debug("Resampled image on %d points, %d outside the support",
                 domain.number_of_points, int(jnp.sum(~defined)))
    return DiscreteImage(domain, values)
