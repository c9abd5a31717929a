"""Lowering engine for Temporary Binding pipelines in a JavaScript subset."""

__version__ = "0.1.0"

from tempbind.compiler import TransformResult, Transformer, lower_source, transform  # noqa: E402
from tempbind.errors import CompileError, Diagnostic  # noqa: E402

__all__ = [
    "CompileError",
    "Diagnostic",
    "TransformResult",
    "Transformer",
    "__version__",
    "lower_source",
    "transform",
]
