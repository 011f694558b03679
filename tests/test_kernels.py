"""
Tests for the centered B-spline basis functions.
"""

import jax
import jax.numpy as jnp
import pytest

from jaxstk import UnsupportedDegreeError
from jaxstk.kernels import (
    bspline_kernel,
    bspline_kernel_derivative,
    mirror_index,
    support_start,
)


def test_kernel_values_at_integers():
    """Test the classical values of the kernels at integer offsets."""
    x = jnp.array([-2.0, -1.0, 0.0, 1.0, 2.0])

    assert jnp.allclose(bspline_kernel(x, 0), jnp.array([0.0, 0.0, 1.0, 0.0, 0.0]))
    assert jnp.allclose(bspline_kernel(x, 1), jnp.array([0.0, 0.0, 1.0, 0.0, 0.0]))
    assert jnp.allclose(bspline_kernel(x, 2), jnp.array([0.0, 0.125, 0.75, 0.125, 0.0]))
    assert jnp.allclose(bspline_kernel(x, 3), jnp.array([0.0, 1 / 6, 2 / 3, 1 / 6, 0.0]))

    print("✓ Kernel values test passed")


def test_degree_zero_half_open_interval():
    """Test that the nearest-neighbour kernel is 1 on [-0.5, 0.5)."""
    x = jnp.array([-0.5, -0.25, 0.49, 0.5])
    assert jnp.allclose(bspline_kernel(x, 0), jnp.array([1.0, 1.0, 1.0, 0.0]))

    print("✓ Degree 0 interval test passed")


@pytest.mark.parametrize("degree", [0, 1, 2, 3])
def test_partition_of_unity(degree):
    """Test that integer shifts of each kernel sum to one."""
    x = jnp.linspace(-0.49, 0.49, 37)
    shifts = jnp.arange(-3, 4)
    sums = jnp.sum(bspline_kernel(x[:, None] - shifts[None, :], degree), axis=1)

    assert jnp.allclose(sums, 1.0, atol=1e-12), f"Partition of unity failed: {sums}"

    print(f"✓ Partition of unity test passed for degree {degree}")


@pytest.mark.parametrize("degree", [0, 1, 2, 3])
def test_finite_support(degree):
    """Test that each kernel vanishes outside a window of degree + 1 units."""
    half_width = (degree + 1) / 2
    x = jnp.array([-half_width - 0.01, half_width + 0.01, -5.0, 5.0])

    assert jnp.allclose(bspline_kernel(x, degree), 0.0)

    print(f"✓ Finite support test passed for degree {degree}")


@pytest.mark.parametrize("degree", [1, 2, 3])
def test_derivative_matches_autodiff(degree):
    """Test the analytic derivative against jax.grad away from the knots."""
    x = jnp.array([-1.8, -1.2, -0.7, -0.3, 0.2, 0.6, 1.3, 1.7])
    analytic = bspline_kernel_derivative(x, degree)
    automatic = jax.vmap(jax.grad(lambda t: bspline_kernel(t, degree)))(x)

    assert jnp.allclose(analytic, automatic, atol=1e-12)

    print(f"✓ Kernel derivative test passed for degree {degree}")


def test_cubic_kernel_is_smooth():
    """Test continuity of the cubic kernel's derivative at its knots."""
    eps = 1e-7
    for knot in (-1.0, 1.0):
        left = bspline_kernel_derivative(jnp.array(knot - eps), 3)
        right = bspline_kernel_derivative(jnp.array(knot + eps), 3)
        assert abs(float(left - right)) < 1e-5

    print("✓ Cubic smoothness test passed")


def test_unsupported_degrees():
    """Test that unsupported degrees and the degree 0 derivative raise."""
    for degree in (-1, 4, 5):
        with pytest.raises(UnsupportedDegreeError, match="Only degrees 0-3 are supported"):
            bspline_kernel(jnp.array(0.0), degree)

    with pytest.raises(UnsupportedDegreeError):
        bspline_kernel_derivative(jnp.array(0.0), 0)

    print("✓ Degree validation test passed")


def test_support_start():
    """Test the first node of the neighbourhood for each degree."""
    u = jnp.array([3.2, 3.7])

    assert support_start(u, 0).tolist() == [3, 4]
    assert support_start(u, 1).tolist() == [3, 3]
    assert support_start(u, 2).tolist() == [2, 3]
    assert support_start(u, 3).tolist() == [2, 2]

    print("✓ Support start test passed")


def test_mirror_index():
    """Test whole-sample mirroring of out-of-range indices."""
    index = jnp.arange(-4, 9)

    assert mirror_index(index, 5).tolist() == [4, 3, 2, 1, 0, 1, 2, 3, 4, 3, 2, 1, 0]
    assert mirror_index(index, 1).tolist() == [0] * 13
    assert mirror_index(jnp.array([-1, 2]), 2).tolist() == [1, 0]

    print("✓ Mirror index test passed")
