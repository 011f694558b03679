"""
Tests for regular image domains and discrete images.
"""

import jax.numpy as jnp
import numpy as np
import pytest

from jaxstk import BoxDomain, DiscreteImage, DiscreteImageDomain, InvalidDomainError


def test_domain_properties():
    """Test number of points, extent and dimensionality."""
    domain = DiscreteImageDomain((1.0, 2.0, 3.0), (0.5, 1.0, 2.0), (4, 3, 2))

    assert domain.dimensionality == 3
    assert domain.number_of_points == 24
    assert jnp.allclose(domain.extent, jnp.array([2.5, 4.0, 5.0]))

    print("✓ Domain properties test passed")


def test_one_dimensional_domain_from_scalars():
    """Test that 1-D domains can be built from plain numbers."""
    domain = DiscreteImageDomain(2.3, 1.5, 7)

    assert domain.size == (7,)
    assert domain.points.shape == (7, 1)
    assert jnp.allclose(domain.points[:, 0], 2.3 + 1.5 * jnp.arange(7))
    assert jnp.allclose(domain.extent, jnp.array([2.3 + 1.5 * 6]))

    print("✓ 1-D domain test passed")


def test_points_first_axis_fastest():
    """Test point ordering: the first axis runs fastest."""
    domain = DiscreteImageDomain((0.0, 0.0), (1.0, 10.0), (2, 3))
    expected = jnp.array([[0, 0], [1, 0], [0, 10], [1, 10], [0, 20], [1, 20]], dtype=float)

    assert jnp.allclose(domain.points, expected)
    assert jnp.allclose(domain.point(3), jnp.array([1.0, 10.0]))
    assert jnp.allclose(domain.point((1, 2)), jnp.array([1.0, 20.0]))

    print("✓ Point ordering test passed")


def test_points_are_restartable():
    """Test that lazily iterated points can be enumerated again."""
    domain = DiscreteImageDomain((0.0, 0.0), (1.0, 1.0), (3, 2))

    first = jnp.stack(list(domain.iter_points()))
    second = jnp.stack(list(domain.iter_points()))

    assert first.shape == (6, 2)
    assert jnp.allclose(first, second)
    assert jnp.allclose(first, domain.points)

    print("✓ Restartable points test passed")


def test_index_conversions():
    """Test linear index <-> multi-index round trips."""
    domain = DiscreteImageDomain((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), (3, 4, 5))
    linear = jnp.arange(domain.number_of_points)

    index = domain.linear_index_to_index(linear)
    assert index.shape == (60, 3)
    assert jnp.array_equal(index[7], jnp.array([1, 2, 0]))
    assert jnp.array_equal(domain.index_to_linear_index(index), linear)
    assert int(domain.index_to_linear_index(jnp.array([2, 3, 4]))) == 2 + 3 * 3 + 4 * 12

    print("✓ Index conversion test passed")


def test_point_to_index():
    """Test nearest grid index lookup, including clamping at the border."""
    domain = DiscreteImageDomain((1.0, -1.0), (0.5, 2.0), (5, 4))

    assert jnp.array_equal(domain.point_to_index(jnp.array([1.6, 2.9])), jnp.array([1, 2]))
    assert jnp.array_equal(domain.point_to_index(jnp.array([100.0, -100.0])), jnp.array([4, 0]))

    print("✓ Point to index test passed")


def test_is_inside():
    """Test the closed-box support test of a domain."""
    domain = DiscreteImageDomain((0.0, 0.0), (1.0, 2.0), (3, 3))
    points = jnp.array([[0.0, 0.0], [2.0, 4.0], [1.0, 1.0], [2.5, 1.0], [-0.1, 1.0]])

    assert domain.is_inside(points).tolist() == [True, True, True, False, False]

    print("✓ Support test passed")


def test_negative_spacing():
    """Test that negative spacings are valid and flip the extent."""
    domain = DiscreteImageDomain(5.0, -1.0, 6)

    assert jnp.allclose(domain.extent, jnp.array([0.0]))
    assert bool(domain.is_inside(jnp.array([2.5])))
    assert not bool(domain.is_inside(jnp.array([5.5])))

    print("✓ Negative spacing test passed")


def test_invalid_domains():
    """Test that malformed grids raise InvalidDomainError."""
    with pytest.raises(InvalidDomainError):
        DiscreteImageDomain(0.0, 0.0, 5)
    with pytest.raises(InvalidDomainError):
        DiscreteImageDomain((0.0, 0.0), (1.0, 1.0), (3, 0))
    with pytest.raises(InvalidDomainError):
        DiscreteImageDomain((0.0, 0.0), (1.0, 1.0), (3, -2))
    with pytest.raises(InvalidDomainError):
        DiscreteImageDomain((0.0, 0.0), (1.0,), (3, 3))

    # InvalidDomainError is a ValueError
    with pytest.raises(ValueError):
        DiscreteImageDomain((0.0,), (0.0,), (3,))

    print("✓ Invalid domain test passed")


def test_fractional_size_is_rejected():
    """Test that non-integer grid sizes are rejected instead of truncated."""
    with pytest.raises(InvalidDomainError):
        DiscreteImageDomain(0.0, 1.0, 2.5)
    with pytest.raises(InvalidDomainError):
        DiscreteImageDomain((0.0, 0.0), (1.0, 1.0), (3, 4.2))

    assert DiscreteImageDomain(0.0, 1.0, 4.0).size == (4,)

    print("✓ Fractional size test passed")


def test_box_domain():
    """Test box volume and inclusion."""
    box = BoxDomain((0.0, 1.0), (2.0, 4.0))

    assert jnp.allclose(box.volume, 6.0)
    assert box.is_inside(jnp.array([[1.0, 1.0], [2.0, 4.0], [2.1, 2.0]])).tolist() == [True, True, False]

    print("✓ Box domain test passed")


def test_discrete_image_indexing():
    """Test linear and multi-index access into a discrete image."""
    domain = DiscreteImageDomain((0.0, 0.0), (1.0, 1.0), (2, 3))
    image = DiscreteImage(domain, jnp.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0]))

    assert len(image) == 6
    assert float(image[3]) == 4.0
    assert float(image[(0, 2)]) == 5.0
    assert image.pixel_shape == ()

    print("✓ Discrete image indexing test passed")


def test_discrete_image_grid_layout():
    """Test that the grid view is indexed [i0, i1] and converts back."""
    domain = DiscreteImageDomain((0.0, 0.0), (1.0, 1.0), (2, 3))
    values = jnp.arange(6.0)
    image = DiscreteImage(domain, values)

    grid = image.as_grid()
    assert grid.shape == (2, 3)
    assert float(grid[1, 2]) == float(image[(1, 2)])

    round_trip = DiscreteImage.from_grid(domain, grid)
    assert jnp.array_equal(round_trip.values, values)

    print("✓ Grid layout test passed")


def test_vector_image_grid_layout():
    """Test grid layout of a vector-valued image."""
    domain = DiscreteImageDomain((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), (2, 3, 4))
    values = jnp.asarray(np.random.default_rng(0).normal(size=(24, 3)))
    image = DiscreteImage(domain, values)

    grid = image.as_grid()
    assert grid.shape == (2, 3, 4, 3)
    assert jnp.allclose(grid[1, 2, 3], image[(1, 2, 3)])
    assert image.pixel_shape == (3,)

    print("✓ Vector grid layout test passed")


def test_discrete_image_value_count():
    """Test that the value count must match the domain."""
    domain = DiscreteImageDomain(0.0, 1.0, 5)
    with pytest.raises(ValueError, match="5 points"):
        DiscreteImage(domain, jnp.zeros(4))

    print("✓ Value count validation test passed")
