"""
jaxstk: B-spline image interpolation, transformations and integration in JAX

Building blocks for statistical shape and image modelling, written with JAX
and Equinox.

Key Features:
- Regular N-D image domains with first-axis-fastest point ordering
- B-spline interpolation of scalar and vector images, degrees 0-3
- Exact reproduction of the samples at grid points (recursive prefiltering)
- Analytic gradients of interpolated images
- Parametric translations, scalings and rotations with analytic Jacobians
- Sample-based integration of continuous images
- Gradient-based intensity registration with optax
"""

from .domain import BoxDomain, DiscreteImageDomain
from .errors import InvalidDomainError, UnsupportedDegreeError
from .image import ContinuousImage, DiscreteImage, FunctionImage, resample
from .interpolation import BSplineImage, BSplineGradientImage, interpolate
from .coefficients import determine_coefficients
from .transformations import (
    Translation,
    Scaling,
    Rotation,
    CompositeTransformation,
    TranslationSpace,
    ScalingSpace,
    RotationSpace2D,
    RotationSpace3D,
    ProductTransformationSpace,
)
from .samplers import UniformSampler, RandomSampler, SampleOnceSampler
from .integration import Integrator, IntegratorConfiguration
from .registration import register, mean_squares_metric, RegistrationResult

__version__ = "0.1.0"

__all__ = [
    "BoxDomain",
    "DiscreteImageDomain",
    "InvalidDomainError",
    "UnsupportedDegreeError",
    "ContinuousImage",
    "DiscreteImage",
    "FunctionImage",
    "resample",
    "BSplineImage",
    "BSplineGradientImage",
    "interpolate",
    "determine_coefficients",
    "Translation",
    "Scaling",
    "Rotation",
    "CompositeTransformation",
    "TranslationSpace",
    "ScalingSpace",
    "RotationSpace2D",
    "RotationSpace3D",
    "ProductTransformationSpace",
    "UniformSampler",
    "RandomSampler",
    "SampleOnceSampler",
    "Integrator",
    "IntegratorConfiguration",
    "register",
    "mean_squares_metric",
    "RegistrationResult",
]
