"""
Point samplers that feed the Integrator.

A sampler returns ``(points, densities)``: the points at which to evaluate the
integrand, and the probability density each point was drawn with. All
samplers here draw from a box and report the uniform density ``1 / volume``.
"""

import abc
import logging
import math
from typing import Tuple

import equinox as eqx
import jax
import jax.numpy as jnp
from jaxtyping import Array, Float

from .domain import BoxDomain

logger = logging.getLogger(__name__)


class Sampler(eqx.Module):
    @property
    @abc.abstractmethod
    def number_of_points(self) -> int:
        ...

    @abc.abstractmethod
    def sample(self) -> Tuple[Float[Array, "n dim"], Float[Array, "n"]]:  # type: ignore
        ...


class UniformSampler(Sampler):
    """
    Regular grid of points covering a box.

    The requested count is rounded down to a whole number of points per axis,
    ``floor(number_of_points ** (1 / D))``. Steps are ``(extent - origin) /
    points_per_axis`` and start at the origin, so the upper faces of the box
    are never sampled.
    """

    domain: BoxDomain
    points_per_axis: int = eqx.field(static=True)

    def __init__(self, domain: BoxDomain, number_of_points: int = 300):
        if number_of_points < 1:
            raise ValueError(f"number_of_points must be positive, got {number_of_points}")
        self.domain = domain
        # the epsilon keeps exact powers (27 ** (1/3) = 2.9999...) from rounding down
        self.points_per_axis = max(1, int(math.floor(number_of_points ** (1.0 / domain.dimensionality) + 1e-9)))

    @property
    def number_of_points(self) -> int:
        return self.points_per_axis ** self.domain.dimensionality

    def sample(self):
        dim = self.domain.dimensionality
        step = (self.domain.extent - self.domain.origin) / self.points_per_axis
        grids = jnp.meshgrid(*[jnp.arange(self.points_per_axis)] * dim, indexing="ij")
        index = jnp.stack([g.T.ravel() for g in grids], axis=-1)
        points = self.domain.origin + index * step
        densities = jnp.full((points.shape[0],), 1.0 / self.domain.volume)
        return points, densities


class RandomSampler(Sampler):
    """
    Independent uniform draws from a box.

    The draws are a pure function of ``key``; ``refresh`` returns a sampler
    with a new key for a fresh set of points.
    """

    domain: BoxDomain
    key: jax.Array
    count: int = eqx.field(static=True)

    def __init__(self, domain: BoxDomain, number_of_points: int = 300, key=None):
        if number_of_points < 1:
            raise ValueError(f"number_of_points must be positive, got {number_of_points}")
        self.domain = domain
        self.key = jax.random.PRNGKey(0) if key is None else key
        self.count = number_of_points

    @property
    def number_of_points(self) -> int:
        return self.count

    def sample(self):
        points = jax.random.uniform(
            self.key,
            (self.count, self.domain.dimensionality),
            dtype=self.domain.origin.dtype,
            minval=self.domain.origin,
            maxval=self.domain.extent,
        )
        densities = jnp.full((self.count,), 1.0 / self.domain.volume)
        return points, densities

    def refresh(self) -> "RandomSampler":
        key, _ = jax.random.split(self.key)
        return eqx.tree_at(lambda sampler: sampler.key, self, key)


class SampleOnceSampler(Sampler):
    """Draws from ``sampler`` once, at construction, and replays those samples."""

    points: Float[Array, "n dim"]  # type: ignore
    densities: Float[Array, "n"]  # type: ignore

    def __init__(self, sampler: Sampler):
        self.points, self.densities = sampler.sample()
        logger.debug("Cached %d samples from %s", self.points.shape[0], type(sampler).__name__)

    @property
    def number_of_points(self) -> int:
        return self.points.shape[0]

    def sample(self):
        return self.points, self.densities
