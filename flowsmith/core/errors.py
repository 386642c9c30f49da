"""Compiler exception hierarchy."""


class CompilerError(Exception):
    """Base class for compiler errors."""

    pass


class NoStartNodeError(CompilerError):
    """The definition has no node to start traversal from (empty node set)."""

    pass


class CompilerConfigError(CompilerError):
    """Compiler configuration or definition file is invalid."""

    pass
