import jax
import jax.numpy as jnp
from jaxtyping import Array, Float


def float_dtype():
    """Default floating point dtype (float64 only when jax_enable_x64 is set)."""
    return jax.dtypes.canonicalize_dtype(jnp.float64)


def as_float_array(values) -> Array:
    return jnp.asarray(values, dtype=float_dtype())


def as_points(points, dimensionality: int) -> Float[Array, "... dim"]:  # type: ignore
    """
    Coerce ``points`` to an array whose trailing axis holds coordinates.

    A bare number is accepted as a single point for 1-D images.
    """
    points = as_float_array(points)
    if points.ndim == 0 and dimensionality == 1:
        points = points.reshape(1)
    if points.ndim == 0 or points.shape[-1] != dimensionality:
        raise ValueError(
            f"Expected points with {dimensionality} coordinates on the last axis, "
            f"got shape {points.shape}"
        )
    return points
