"""
Centered B-spline basis functions on a unit-spaced grid.

``x`` is the offset, in grid units, between an evaluation position and the
grid node that owns a coefficient. A degree ``n`` kernel is non-zero on an
interval ``n + 1`` grid units wide, so a 1-D evaluation touches ``n + 1``
coefficients and an N-D one touches ``(n + 1) ** N``.
"""

import jax.numpy as jnp
from jaxtyping import Array, Float, Int

from .errors import UnsupportedDegreeError

SUPPORTED_DEGREES = (0, 1, 2, 3)


def check_degree(degree: int) -> int:
    if degree not in SUPPORTED_DEGREES:
        raise UnsupportedDegreeError(f"Only degrees 0-3 are supported, got degree {degree}")
    return degree


def bspline_kernel(x: Float[Array, "..."], degree: int) -> Float[Array, "..."]:  # type: ignore
    """
    Evaluate the centered B-spline ``B_degree`` elementwise.

    Args:
        x: Offsets in grid units
        degree: Polynomial degree, 0 (nearest neighbour) to 3 (cubic)

    Returns:
        Kernel values with the shape of ``x``
    """
    check_degree(degree)
    x = jnp.asarray(x)
    ax = jnp.abs(x)

    if degree == 0:
        return jnp.where((x >= -0.5) & (x < 0.5), 1.0, 0.0)

    if degree == 1:
        return jnp.where(ax < 1.0, 1.0 - ax, 0.0)

    if degree == 2:
        inner = 0.75 - ax ** 2
        outer = 0.5 * (ax - 1.5) ** 2
        return jnp.where(ax < 0.5, inner, jnp.where(ax < 1.5, outer, 0.0))

    inner = 2.0 / 3.0 - ax ** 2 + 0.5 * ax ** 3
    outer = (2.0 - ax) ** 3 / 6.0
    return jnp.where(ax < 1.0, inner, jnp.where(ax < 2.0, outer, 0.0))


def bspline_kernel_derivative(x: Float[Array, "..."], degree: int) -> Float[Array, "..."]:  # type: ignore
    """
    Analytic first derivative of ``bspline_kernel`` with respect to ``x``.

    Raises:
        UnsupportedDegreeError: For degree 0, whose kernel is piecewise constant
            and has no usable derivative, and for unsupported degrees.
    """
    check_degree(degree)
    if degree == 0:
        raise UnsupportedDegreeError("The degree 0 B-spline kernel has no derivative")
    x = jnp.asarray(x)
    ax = jnp.abs(x)
    sign = jnp.sign(x)

    if degree == 1:
        return jnp.where(ax < 1.0, -sign, 0.0)

    if degree == 2:
        inner = -2.0 * x
        outer = sign * (ax - 1.5)
        return jnp.where(ax < 0.5, inner, jnp.where(ax < 1.5, outer, 0.0))

    inner = -2.0 * x + 1.5 * x * ax
    outer = -0.5 * sign * (2.0 - ax) ** 2
    return jnp.where(ax < 1.0, inner, jnp.where(ax < 2.0, outer, 0.0))


def support_start(u: Float[Array, "..."], degree: int) -> Int[Array, "..."]:  # type: ignore
    """
    First of the ``degree + 1`` grid nodes whose kernel can be non-zero at ``u``.

    ``u`` is a continuous grid coordinate; the nodes are
    ``start, start + 1, ..., start + degree``.
    """
    return jnp.floor(u - (degree - 1) / 2.0).astype(jnp.int32)


def mirror_index(index: Int[Array, "..."], size) -> Int[Array, "..."]:  # type: ignore
    """
    Fold indices back onto ``[0, size - 1]`` by whole-sample mirroring.

    The extension is ``c[-k] = c[k]`` and ``c[size - 1 + k] = c[size - 1 - k]``,
    the same boundary convention the coefficient filter assumes. ``size`` may be
    an int or an array broadcasting against ``index``.
    """
    size = jnp.asarray(size)
    period = jnp.maximum(2 * (size - 1), 1)
    folded = jnp.abs(index) % period
    folded = jnp.where(folded >= size, period - folded, folded)
    return jnp.where(size == 1, 0, folded)
