from monet_rbf.preconditioner.core import RBFPreconditioner
from monet_rbf.preconditioner.grid import CoarseGrid, FineGrid, LocalGrid

__all__ = ["CoarseGrid", "FineGrid", "LocalGrid", "RBFPreconditioner"]
