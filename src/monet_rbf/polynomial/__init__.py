from monet_rbf.polynomial.basis import (
    LagrangeBasis,
    MonomialBasis,
    PolynomialEvaluator,
    monomial_exponents,
    unisolvent_indices,
)

__all__ = [
    "LagrangeBasis",
    "MonomialBasis",
    "PolynomialEvaluator",
    "monomial_exponents",
    "unisolvent_indices",
]
