import itertools
import logging
from typing import Optional, Tuple

import equinox as eqx
import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Float

from .coefficients import determine_coefficients
from .domain import DiscreteImageDomain
from .image import ContinuousImage, DiscreteImage
from .kernels import (
    bspline_kernel,
    bspline_kernel_derivative,
    check_degree,
    mirror_index,
    support_start,
)

logger = logging.getLogger(__name__)


class BSplineImage(ContinuousImage):
    """
    Continuous image given by B-spline coefficients on a regular grid.

    The value at ``p`` is ``sum_k c[k] * prod_axis B(u_axis - k_axis)`` with
    ``u = (p - origin) / spacing``. Only the ``(degree + 1) ** D`` coefficients
    whose kernels overlap ``u`` are visited; indices that fall off the grid
    are mirrored back onto it. The image is defined on the closed box spanned
    by the grid.

    Being an equinox module, a BSplineImage is a pytree: it can be passed
    through ``jax.jit`` / ``jax.vmap``, and ``jax.grad`` flows to both the
    evaluation points and the coefficients.

    Attributes:
        domain: Grid the coefficients live on
        coefficients: Coefficients indexed ``[i0, i1, ..., *pixel]``
        degree: Spline degree, 0 to 3
    """

    domain: DiscreteImageDomain
    coefficients: Float[Array, "..."]  # type: ignore
    degree: int = eqx.field(static=True)

    def __init__(self, domain: DiscreteImageDomain, coefficients, degree: int):
        check_degree(degree)
        coefficients = jnp.asarray(coefficients)
        if tuple(coefficients.shape[:domain.dimensionality]) != domain.size:
            raise ValueError(
                f"Coefficient grid {coefficients.shape} does not match domain size {domain.size}"
            )
        self.domain = domain
        self.coefficients = coefficients
        self.degree = degree

    @property
    def dimensionality(self) -> int:
        return self.domain.dimensionality

    @property
    def pixel_shape(self) -> Tuple[int, ...]:
        return tuple(self.coefficients.shape[self.dimensionality:])

    def is_defined_at(self, points):
        return self.domain.is_inside(points)

    def evaluate(self, points):
        indices, kernels, _ = self._neighbourhood(points, with_derivative=False)
        weights = jnp.prod(kernels, axis=-1)
        return self._weighted_sum(indices, weights)

    def differentiate(self) -> Optional[ContinuousImage]:
        if self.degree == 0:
            return None
        return BSplineGradientImage(self.domain, self.coefficients, self.degree)

    def _neighbourhood(self, points, with_derivative: bool):
        """
        Coefficient indices and per-axis kernel values around each point.

        Returns:
            ``indices`` of shape ``(..., K, D)`` (already mirrored into the
            grid), per-axis ``kernels`` of shape ``(..., K, D)`` and, when
            requested, per-axis kernel ``derivatives`` of the same shape, where
            ``K = (degree + 1) ** D``.
        """
        dim = self.dimensionality
        n = self.degree
        u = self.domain.continuous_index(points)

        # (..., D, n + 1) candidate nodes along each axis
        nodes = support_start(u, n)[..., None] + jnp.arange(n + 1)
        offsets = u[..., None] - nodes

        # every combination of one node per axis, (K, D)
        combinations = np.array(list(itertools.product(range(n + 1), repeat=dim)))
        axes = np.arange(dim)[None, :]

        indices = mirror_index(nodes[..., axes, combinations], np.asarray(self.domain.size))
        kernels = bspline_kernel(offsets, n)[..., axes, combinations]
        derivatives = None
        if with_derivative:
            derivatives = bspline_kernel_derivative(offsets, n)[..., axes, combinations]
        return indices, kernels, derivatives

    def _weighted_sum(self, indices, weights):
        """Sum ``weights * coefficients[indices]`` over the neighbourhood axis."""
        gathered = self.coefficients[tuple(indices[..., axis] for axis in range(self.dimensionality))]
        weights = weights.reshape(weights.shape + (1,) * (self.coefficients.ndim - self.dimensionality))
        return jnp.sum(weights * gathered, axis=indices.ndim - 2)


class BSplineGradientImage(BSplineImage):
    """
    Gradient of a BSplineImage.

    Each partial derivative swaps the kernel of the differentiated axis for its
    derivative and divides by that axis' spacing. Values have shape
    ``(..., D, *pixel_shape)``.
    """

    @property
    def pixel_shape(self) -> Tuple[int, ...]:
        return (self.dimensionality,) + tuple(self.coefficients.shape[self.dimensionality:])

    def evaluate(self, points):
        indices, kernels, derivatives = self._neighbourhood(points, with_derivative=True)
        partials = []
        for axis in range(self.dimensionality):
            factors = kernels.at[..., axis].set(derivatives[..., axis])
            weights = jnp.prod(factors, axis=-1) / self.domain.spacing[axis]
            partials.append(self._weighted_sum(indices, weights))
        return jnp.stack(partials, axis=points.ndim - 1)

    def differentiate(self) -> Optional[ContinuousImage]:
        return None


def interpolate(image: DiscreteImage, degree: int) -> BSplineImage:
    """
    Build the continuous B-spline interpolant of a discrete image.

    The coefficients are computed once, here, before the continuous image
    exists; afterwards they are only read.

    Args:
        image: Scalar or vector valued discrete image
        degree: Spline degree, 0 (nearest neighbour) to 3 (cubic)

    Returns:
        BSplineImage reproducing ``image`` at its grid points

    Raises:
        UnsupportedDegreeError: If ``degree`` is not 0, 1, 2 or 3
    """
    check_degree(degree)
    logger.debug("Interpolating %s image with pixel shape %s at degree %d",
                 "x".join(str(n) for n in image.domain.size), image.pixel_shape, degree)
    coefficients = determine_coefficients(degree, image)
    return BSplineImage(image.domain, coefficients, degree)
