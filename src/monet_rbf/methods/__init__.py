"""
Compiled kernels used by the evaluators and the preconditioner.
"""
