"""
Parametric coordinate transformations with analytic Jacobians.

A ``Transformation`` maps points ``(..., D)`` to points ``(..., D)`` and knows
its Jacobian with respect to the point. A ``TransformationSpace`` is a family
of transformations indexed by a parameter vector; it builds a transformation
from parameters and knows the Jacobian with respect to those parameters, which
is what gradient-based registration needs.

Composition reads right to left: ``a.compose(b)`` applies ``b`` first.
"""

import abc
from typing import Optional

import equinox as eqx
import jax.numpy as jnp
from jaxtyping import Array, Float

from .arrays import as_float_array


class Transformation(eqx.Module):
    @abc.abstractmethod
    def __call__(self, points: Float[Array, "... dim"]) -> Float[Array, "... dim"]:  # type: ignore
        ...

    @abc.abstractmethod
    def jacobian(self, points: Float[Array, "... dim"]) -> Float[Array, "... dim dim"]:  # type: ignore
        """Derivative with respect to the point, ``J[..., i, j] = d out_i / d in_j``."""

    def inverse(self) -> Optional["Transformation"]:
        """The inverse transformation, or ``None`` if it does not exist."""
        return None

    def compose(self, other: "Transformation") -> "Transformation":
        """``self ∘ other``: apply ``other``, then ``self``."""
        return CompositeTransformation(self, other)


def _broadcast_matrix(matrix, points):
    return jnp.broadcast_to(matrix, points.shape[:-1] + matrix.shape)


class Translation(Transformation):
    offset: Float[Array, "dim"]  # type: ignore

    def __init__(self, offset):
        self.offset = jnp.atleast_1d(as_float_array(offset))

    def __call__(self, points):
        return points + self.offset

    def jacobian(self, points):
        return _broadcast_matrix(jnp.eye(self.offset.shape[0], dtype=self.offset.dtype), points)

    def inverse(self):
        return Translation(-self.offset)


class Scaling(Transformation):
    """Isotropic scaling about the origin."""

    factor: Float[Array, ""]  # type: ignore
    dimensionality: int = eqx.field(static=True)

    def __init__(self, factor, dimensionality: int):
        self.factor = jnp.reshape(as_float_array(factor), ())
        self.dimensionality = dimensionality

    def __call__(self, points):
        return points * self.factor

    def jacobian(self, points):
        return _broadcast_matrix(self.factor * jnp.eye(self.dimensionality, dtype=self.factor.dtype), points)

    def inverse(self):
        if float(self.factor) == 0.0:
            return None
        return Scaling(1.0 / self.factor, self.dimensionality)


class Rotation(Transformation):
    """``p -> R (p - center) + center`` for an orthogonal matrix ``R``."""

    matrix: Float[Array, "dim dim"]  # type: ignore
    center: Float[Array, "dim"]  # type: ignore

    def __call__(self, points):
        return (points - self.center) @ self.matrix.T + self.center

    def jacobian(self, points):
        return _broadcast_matrix(self.matrix, points)

    def inverse(self):
        return Rotation(self.matrix.T, self.center)


class CompositeTransformation(Transformation):
    """``outer ∘ inner``."""

    outer: Transformation
    inner: Transformation

    def __call__(self, points):
        return self.outer(self.inner(points))

    def jacobian(self, points):
        return self.outer.jacobian(self.inner(points)) @ self.inner.jacobian(points)

    def inverse(self):
        outer_inverse = self.outer.inverse()
        inner_inverse = self.inner.inverse()
        if outer_inverse is None or inner_inverse is None:
            return None
        return CompositeTransformation(inner_inverse, outer_inverse)


class TransformationSpace(eqx.Module):
    @property
    @abc.abstractmethod
    def parameters_dimensionality(self) -> int:
        ...

    @abc.abstractmethod
    def __call__(self, parameters: Float[Array, "n_params"]) -> Transformation:  # type: ignore
        ...

    @abc.abstractmethod
    def jacobian_wrt_parameters(self, parameters, points) -> Float[Array, "... dim n_params"]:  # type: ignore
        """``J[..., i, k] = d T(p)_i / d parameters_k`` at each of ``points``."""

    def inverse_transform(self, parameters) -> Optional[Transformation]:
        return self(parameters).inverse()

    def product(self, other: "TransformationSpace") -> "ProductTransformationSpace":
        """Space of ``self(p1) ∘ other(p2)`` with parameters ``concat(p1, p2)``."""
        return ProductTransformationSpace(self, other)


class TranslationSpace(TransformationSpace):
    dimensionality: int = eqx.field(static=True)

    @property
    def parameters_dimensionality(self) -> int:
        return self.dimensionality

    def __call__(self, parameters):
        return Translation(parameters)

    def jacobian_wrt_parameters(self, parameters, points):
        return _broadcast_matrix(jnp.eye(self.dimensionality, dtype=jnp.result_type(points)), points)


class ScalingSpace(TransformationSpace):
    """One parameter: the isotropic scale factor."""

    dimensionality: int = eqx.field(static=True)

    @property
    def parameters_dimensionality(self) -> int:
        return 1

    def __call__(self, parameters):
        return Scaling(jnp.reshape(as_float_array(parameters), ()), self.dimensionality)

    def jacobian_wrt_parameters(self, parameters, points):
        return points[..., None]


def _rotation_2d(phi):
    c, s = jnp.cos(phi), jnp.sin(phi)
    return jnp.array([[c, -s], [s, c]])


class RotationSpace2D(TransformationSpace):
    """Counter-clockwise rotation about ``center`` by one angle (radians)."""

    center: Float[Array, "2"]  # type: ignore

    def __init__(self, center):
        self.center = as_float_array(center)

    @property
    def parameters_dimensionality(self) -> int:
        return 1

    @staticmethod
    def rotation_parameters_to_parameter_vector(phi) -> Float[Array, "1"]:  # type: ignore
        return jnp.atleast_1d(as_float_array(phi))

    def __call__(self, parameters):
        phi = jnp.reshape(as_float_array(parameters), ())
        return Rotation(_rotation_2d(phi), self.center)

    def jacobian_wrt_parameters(self, parameters, points):
        phi = jnp.reshape(as_float_array(parameters), ())
        c, s = jnp.cos(phi), jnp.sin(phi)
        d_matrix = jnp.array([[-s, -c], [c, -s]])
        return ((points - self.center) @ d_matrix.T)[..., None]


def _axis_rotations(phi, theta, psi):
    """Elementary rotations about z, y and x and their derivatives."""
    cz, sz = jnp.cos(phi), jnp.sin(phi)
    cy, sy = jnp.cos(theta), jnp.sin(theta)
    cx, sx = jnp.cos(psi), jnp.sin(psi)
    zero, one = jnp.zeros_like(phi), jnp.ones_like(phi)

    rz = jnp.array([[cz, -sz, zero], [sz, cz, zero], [zero, zero, one]])
    ry = jnp.array([[cy, zero, sy], [zero, one, zero], [-sy, zero, cy]])
    rx = jnp.array([[one, zero, zero], [zero, cx, -sx], [zero, sx, cx]])

    d_rz = jnp.array([[-sz, -cz, zero], [cz, -sz, zero], [zero, zero, zero]])
    d_ry = jnp.array([[-sy, zero, cy], [zero, zero, zero], [-cy, zero, -sy]])
    d_rx = jnp.array([[zero, zero, zero], [zero, -sx, -cx], [zero, cx, -sx]])
    return (rz, ry, rx), (d_rz, d_ry, d_rx)


class RotationSpace3D(TransformationSpace):
    """
    Rotation about ``center`` by Euler angles ``(phi, theta, psi)``.

    The matrix is ``Rz(phi) @ Ry(theta) @ Rx(psi)``.
    """

    center: Float[Array, "3"]  # type: ignore

    def __init__(self, center):
        self.center = as_float_array(center)

    @property
    def parameters_dimensionality(self) -> int:
        return 3

    def __call__(self, parameters):
        (rz, ry, rx), _ = _axis_rotations(*as_float_array(parameters))
        return Rotation(rz @ ry @ rx, self.center)

    def jacobian_wrt_parameters(self, parameters, points):
        (rz, ry, rx), (d_rz, d_ry, d_rx) = _axis_rotations(*as_float_array(parameters))
        centered = points - self.center
        columns = [
            centered @ (d_rz @ ry @ rx).T,
            centered @ (rz @ d_ry @ rx).T,
            centered @ (rz @ ry @ d_rx).T,
        ]
        return jnp.stack(columns, axis=-1)


class ProductTransformationSpace(TransformationSpace):
    """
    Space of ``outer(p1) ∘ inner(p2)``, parametrised by ``concat(p1, p2)``.

    Parameter derivatives follow the chain rule: the ``p1`` block is the
    outer space's Jacobian at the inner image of the point, the ``p2`` block is
    the outer transformation's point Jacobian times the inner space's
    parameter Jacobian.
    """

    outer: TransformationSpace
    inner: TransformationSpace

    @property
    def parameters_dimensionality(self) -> int:
        return self.outer.parameters_dimensionality + self.inner.parameters_dimensionality

    def _split(self, parameters):
        parameters = as_float_array(parameters)
        split = self.outer.parameters_dimensionality
        return parameters[:split], parameters[split:]

    def __call__(self, parameters):
        outer_parameters, inner_parameters = self._split(parameters)
        return CompositeTransformation(self.outer(outer_parameters), self.inner(inner_parameters))

    def jacobian_wrt_parameters(self, parameters, points):
        outer_parameters, inner_parameters = self._split(parameters)
        inner_points = self.inner(inner_parameters)(points)
        outer_block = self.outer.jacobian_wrt_parameters(outer_parameters, inner_points)
        inner_block = (
            self.outer(outer_parameters).jacobian(inner_points)
            @ self.inner.jacobian_wrt_parameters(inner_parameters, points)
        )
        return jnp.concatenate([outer_block, inner_block], axis=-1)

    def inverse_transform(self, parameters):
        outer_parameters, inner_parameters = self._split(parameters)
        outer_inverse = self.outer.inverse_transform(outer_parameters)
        inner_inverse = self.inner.inverse_transform(inner_parameters)
        if outer_inverse is None or inner_inverse is None:
            return None
        return CompositeTransformation(inner_inverse, outer_inverse)
