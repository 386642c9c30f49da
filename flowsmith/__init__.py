"""Flowsmith - workflow graph compiler.

Compiles node/edge workflow graphs drawn in a visual editor into TypeScript
projects for the Temporal durable-execution runtime.
"""

__version__ = "0.1.0"
