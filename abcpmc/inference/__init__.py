"""
Likelihood-Free Inference
=========================
Approximate Bayesian Computation for simulator models.

Key components:
1. Particle Tables: immutable weighted samples, one per stage
2. Distances: two-phase (uninitialized / calibrated) summary distances
3. Rejection ABC: simulate from the prior, keep the closest
4. ABC-PMC: sequential importance sampling with shrinking thresholds

References:
- Beaumont, M. A., et al. (2009). Adaptive approximate Bayesian computation
- Prangle, D. (2017). Adapting the ABC distance function
"""

from abcpmc.inference.distances import (
    CalibratedDistance,
    Distance,
    DistanceMetric,
    DistanceNotCalibratedError,
    EuclideanDistance,
    MADScaledDistance,
    UninitializedDistance,
    calibrate,
    evaluate,
)

from abcpmc.inference.particles import ParticleTable

from abcpmc.inference.priors import (
    IndependentPrior,
    ParameterPrior,
    Prior,
)

from abcpmc.inference.problem import ABCProblem

from abcpmc.inference.kernel import (
    PerturbationKernel,
    build_perturbation_kernel,
    weighted_covariance,
)

from abcpmc.inference.importance import (
    compute_importance_weights,
    propose,
)

from abcpmc.inference.progress import (
    LoggingProgress,
    NullProgress,
    ProgressObserver,
    StageReport,
)

from abcpmc.inference.results import PMCOutput, RejectionOutput

from abcpmc.inference.rejection import run_abc_rejection

from abcpmc.inference.pmc import (
    SimulationBudget,
    run_abc_pmc,
    run_abc_pmc_comparison,
)

__all__ = [
    "CalibratedDistance",
    "Distance",
    "DistanceMetric",
    "DistanceNotCalibratedError",
    "EuclideanDistance",
    "MADScaledDistance",
    "UninitializedDistance",
    "calibrate",
    "evaluate",
    "ParticleTable",
    "IndependentPrior",
    "ParameterPrior",
    "Prior",
    "ABCProblem",
    "PerturbationKernel",
    "build_perturbation_kernel",
    "weighted_covariance",
    "compute_importance_weights",
    "propose",
    "LoggingProgress",
    "NullProgress",
    "ProgressObserver",
    "StageReport",
    "PMCOutput",
    "RejectionOutput",
    "run_abc_rejection",
    "SimulationBudget",
    "run_abc_pmc",
    "run_abc_pmc_comparison",
]
