import logging
from typing import Callable, Optional, Union

import equinox as eqx
import jax.numpy as jnp
from jaxtyping import Array

from .image import ContinuousImage
from .samplers import Sampler

logger = logging.getLogger(__name__)


class IntegratorConfiguration(eqx.Module):
    sampler: Sampler


class Integrator(eqx.Module):
    """
    Monte-Carlo style integration over the points a sampler provides.

    ``integrate(f) = (sum_i f(x_i) / density_i) / (number_of_points - 1)``.
    Where ``f`` is undefined its contribution is the zero element of its value
    type. A ContinuousImage integrand is evaluated on the whole sample batch at
    once and reduced in one step, so the summation order is left to JAX.
    """

    configuration: IntegratorConfiguration

    @property
    def sampler(self) -> Sampler:
        return self.configuration.sampler

    def integrate(self, f: Union[ContinuousImage, Callable], dimensionality: Optional[int] = None) -> Array:
        """
        Integrate a continuous image or a per-point function.

        Args:
            f: A ContinuousImage, or a callable taking one point and returning
                a value or ``None`` where it is undefined
            dimensionality: Length of vector values; only needed for callables
                whose result length is not known in advance

        Returns:
            The integral, with the shape of one value of ``f``
        """
        points, densities = self.sampler.sample()
        if isinstance(f, ContinuousImage):
            values, _ = f.lift(points)
        else:
            values = _lift_pointwise(f, points, dimensionality)
        total = jnp.tensordot(1.0 / densities, values, axes=1)
        return total / (self.sampler.number_of_points - 1)

    def integrate_scalar(self, f: Union[ContinuousImage, Callable]) -> Array:
        result = self.integrate(f)
        if result.ndim != 0:
            raise ValueError(f"Expected a scalar integrand, got values of shape {result.shape}")
        return result

    def integrate_vector(self, f: Union[ContinuousImage, Callable], dimensionality: Optional[int] = None) -> Array:
        result = self.integrate(f, dimensionality)
        if result.ndim != 1:
            raise ValueError(f"Expected a vector integrand, got values of shape {result.shape}")
        return result


def _lift_pointwise(f: Callable, points, dimensionality: Optional[int]) -> Array:
    """Evaluate ``f`` point by point, replacing ``None`` by a zero of the right shape."""
    results = [f(point) for point in points]
    defined = [jnp.asarray(value) for value in results if value is not None]

    if dimensionality is not None:
        zero = jnp.zeros((dimensionality,), dtype=points.dtype)
    elif defined:
        zero = jnp.zeros_like(defined[0])
    else:
        zero = jnp.zeros((), dtype=points.dtype)

    logger.debug("Integrand undefined at %d of %d samples", len(results) - len(defined), len(results))
    return jnp.stack([zero if value is None else jnp.asarray(value, dtype=zero.dtype) for value in results])
