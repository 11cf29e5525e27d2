from monet_rbf.interpolation.core import RBFEvaluator, kernel_matvec

__all__ = ["RBFEvaluator", "kernel_matvec"]
