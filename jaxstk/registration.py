"""
Intensity-based image registration by gradient descent.

Finds transformation parameters ``θ`` that minimise the mean-squares metric
``∫ (moving(T_θ(x)) - fixed(x))² dx`` over the integrator's sample points.
Gradients come from ``jax.value_and_grad`` through the spline evaluation,
updates from an optax optimiser.
"""

import logging
from typing import Callable, List, NamedTuple, Optional

import jax
import jax.numpy as jnp
import optax
from jaxtyping import Array, Float

from .arrays import as_float_array
from .image import ContinuousImage
from .integration import Integrator
from .transformations import Transformation, TransformationSpace

logger = logging.getLogger(__name__)


class RegistrationResult(NamedTuple):
    parameters: Float[Array, "n_params"]  # type: ignore
    transformation: Transformation
    loss_history: List[float]


class SquaredDifferenceImage(ContinuousImage):
    """Pointwise ``|a(x) - b(x)|²``, defined where both images are."""

    a: ContinuousImage
    b: ContinuousImage

    @property
    def dimensionality(self) -> int:
        return self.a.dimensionality

    def evaluate(self, points):
        difference = self.a.evaluate(points) - self.b.evaluate(points)
        pixel_axes = tuple(range(points.ndim - 1, difference.ndim))
        return jnp.sum(difference ** 2, axis=pixel_axes)

    def is_defined_at(self, points):
        return self.a.is_defined_at(points) & self.b.is_defined_at(points)


def mean_squares_metric(
    fixed: ContinuousImage,
    moving: ContinuousImage,
    space: TransformationSpace,
    integrator: Integrator,
) -> Callable[[Array], Array]:
    """The registration metric as a differentiable function of the parameters."""

    def metric(parameters):
        warped = moving.compose(space(parameters))
        return integrator.integrate_scalar(SquaredDifferenceImage(warped, fixed))

    return metric


def register(
    fixed: ContinuousImage,
    moving: ContinuousImage,
    space: TransformationSpace,
    integrator: Integrator,
    initial_parameters: Optional[Array] = None,
    learning_rate: float = 0.01,
    n_steps: int = 200,
    log_every: int = 50,
) -> RegistrationResult:
    """
    Register ``moving`` onto ``fixed`` with Adam.

    Args:
        fixed: Reference image
        moving: Image that is warped by the transformation
        space: Transformation family to search
        integrator: Supplies the sample points of the metric
        initial_parameters: Starting point (zeros if omitted)
        learning_rate: Adam step size
        n_steps: Number of optimisation steps
        log_every: Log the metric every this many steps

    Returns:
        RegistrationResult with the final parameters, the corresponding
        transformation and the metric value before each step
    """
    if initial_parameters is None:
        initial_parameters = jnp.zeros(space.parameters_dimensionality)
    parameters = as_float_array(initial_parameters)
    if parameters.shape != (space.parameters_dimensionality,):
        raise ValueError(
            f"Expected {space.parameters_dimensionality} parameters, got shape {parameters.shape}"
        )
    if log_every < 1:
        raise ValueError(f"log_every must be positive, got {log_every}")

    metric = mean_squares_metric(fixed, moving, space, integrator)
    optimizer = optax.adam(learning_rate)
    opt_state = optimizer.init(parameters)

    @jax.jit
    def update_step(parameters, opt_state):
        loss, grads = jax.value_and_grad(metric)(parameters)
        updates, opt_state = optimizer.update(grads, opt_state, parameters)
        parameters = optax.apply_updates(parameters, updates)
        return parameters, opt_state, loss

    loss_history = []
    for step in range(n_steps):
        parameters, opt_state, loss = update_step(parameters, opt_state)
        loss_history.append(float(loss))

        if step % log_every == 0:
            logger.info("Step %d, metric %.6f", step, loss_history[-1])

    logger.info("Finished after %d steps, metric %.6f", n_steps, loss_history[-1] if loss_history else float("nan"))
    return RegistrationResult(parameters, space(parameters), loss_history)
