"""
B-spline coefficients that interpolate a sampled image.

For degrees 0 and 1 the basis is already interpolating at the grid nodes, so
the coefficients are the samples themselves. For degrees 2 and 3 every 1-D line
of the image is run through a recursive (causal then anticausal) IIR filter,
one axis after the other. The filter assumes the signal continues by
whole-sample mirroring at both ends of each line; evaluation mirrors
out-of-range coefficient indices the same way, so the spline reproduces the
samples exactly at the grid nodes.

Reference: M. Unser, "Splines: A Perfect Fit for Signal and Image Processing",
IEEE Signal Processing Magazine, 1999.
"""

import logging
import math
from typing import Tuple

import jax
import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Float

from .arrays import float_dtype
from .image import DiscreteImage
from .kernels import check_degree

logger = logging.getLogger(__name__)

# Poles of the direct B-spline filter, by degree.
FILTER_POLES = {
    2: (math.sqrt(8.0) - 3.0,),
    3: (math.sqrt(3.0) - 2.0,),
}


def determine_coefficients(degree: int, image: DiscreteImage) -> Float[Array, "..."]:  # type: ignore
    """
    Compute interpolating B-spline coefficients for ``image``.

    Args:
        degree: Spline degree, 0 to 3
        image: Scalar or vector valued discrete image

    Returns:
        Coefficients in grid layout, indexed ``[i0, i1, ..., *pixel]``, in the
        default floating point dtype

    Raises:
        UnsupportedDegreeError: If ``degree`` is not 0, 1, 2 or 3
    """
    check_degree(degree)
    coefficients = image.as_grid().astype(float_dtype())
    if degree not in FILTER_POLES:
        return coefficients

    poles = FILTER_POLES[degree]
    for axis in range(image.domain.dimensionality):
        logger.debug("Filtering axis %d (%d samples) for degree %d", axis,
                     coefficients.shape[axis], degree)
        coefficients = filter_axis(coefficients, axis, poles)
    return coefficients


def filter_axis(coefficients: Array, axis: int, poles: Tuple[float, ...]) -> Array:
    """Apply the recursive spline filter to every line along ``axis``."""
    if coefficients.shape[axis] == 1:
        return coefficients
    lines = jnp.moveaxis(coefficients, axis, 0)
    for pole in poles:
        lines = _filter_lines(lines, pole)
    return jnp.moveaxis(lines, 0, axis)


def _filter_lines(c: Array, z: float) -> Array:
    """
    One pole of the filter, applied along axis 0 of ``c``.

    All trailing axes are carried along, so every line of the image is
    filtered in the same scan.
    """
    n = c.shape[0]
    c = c * ((1.0 - z) * (1.0 - 1.0 / z))

    c_first = jnp.tensordot(_causal_initial_weights(n, z).astype(c.dtype), c, axes=1)

    def causal(previous, sample):
        current = sample + z * previous
        return current, current

    _, rest = jax.lax.scan(causal, c_first, c[1:])
    c_plus = jnp.concatenate([c_first[None], rest])

    c_last = (z / (z * z - 1.0)) * (c_plus[-1] + z * c_plus[-2])

    def anticausal(following, sample):
        current = z * (following - sample)
        return current, current

    _, rest = jax.lax.scan(anticausal, c_last, c_plus[:-1], reverse=True)
    return jnp.concatenate([rest, c_last[None]])


def _causal_initial_weights(n: int, z: float) -> np.ndarray:
    """
    Weights giving the causal filter's first output for a mirrored signal.

    Summing ``z**k * c[-k]`` over one period ``2n - 2`` of the mirrored
    extension and dividing by ``1 - z**(2n - 2)`` accounts for all earlier
    periods exactly.
    """
    k = np.arange(n)
    weights = z ** k
    interior = (k > 0) & (k < n - 1)
    weights = weights + np.where(interior, z ** (2 * n - 2 - k), 0.0)
    return weights / (1.0 - z ** (2 * n - 2))
